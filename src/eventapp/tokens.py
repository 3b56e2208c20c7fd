"""Bearer token issuing and verification."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from pydantic import BaseModel, ConfigDict, Field, StrictInt
from pydantic import ValidationError as ClaimsValidationError

from .config import Settings
from .errors import ExpiredTokenError, MalformedTokenError, SignatureInvalidError

logger = logging.getLogger(__name__)


class TokenClaims(BaseModel):
    """Claims carried by a bearer token, validated when a token is parsed."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    sub: str = Field(pattern=r"^[1-9][0-9]*$")
    exp: StrictInt
    iat: Optional[StrictInt] = None

    @property
    def user_id(self) -> int:
        return int(self.sub)


class TokenIssuer:
    """Sign and validate JWTs with a symmetric HMAC secret.

    Verification only accepts the configured algorithm, so tokens signed
    with another algorithm (including ``none``) are rejected as having an
    invalid signature.
    """

    def __init__(self, secret: str, algorithm: str = "HS256", lifetime: timedelta = timedelta(hours=72)):
        self._secret = secret
        self.algorithm = algorithm
        self.lifetime = lifetime

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenIssuer":
        return cls(
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            lifetime=timedelta(hours=settings.token_lifetime_hours),
        )

    def issue(self, user_id: int, now: datetime | None = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "iat": issued_at,
            "exp": issued_at + self.lifetime,
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def decode(self, token: str) -> TokenClaims:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "sub"], "verify_iat": False},
            )
        except jwt.ExpiredSignatureError as exc:
            raise ExpiredTokenError() from exc
        except (jwt.InvalidSignatureError, jwt.InvalidAlgorithmError) as exc:
            raise SignatureInvalidError() from exc
        except jwt.InvalidTokenError as exc:
            logger.debug("rejecting token: %s", type(exc).__name__)
            raise MalformedTokenError() from exc

        try:
            return TokenClaims.model_validate(payload)
        except ClaimsValidationError as exc:
            raise MalformedTokenError() from exc

    def verify(self, token: str) -> int:
        """Return the user id a valid token was issued for."""
        return self.decode(token).user_id
