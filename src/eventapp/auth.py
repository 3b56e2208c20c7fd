from fastapi import Depends, Request

from .errors import AuthError
from .models.user import User
from .services import Services

BEARER_PREFIX = "Bearer "


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_current_user(request: Request, services: Services = Depends(get_services)) -> User:
    """Resolve the bearer token on the request to a registered user.

    The user is also stored on ``request.state.user`` for the rest of the
    request.
    """
    header = request.headers.get("Authorization")
    if not header:
        raise AuthError("missing auth header")
    if not header.startswith(BEARER_PREFIX):
        raise AuthError("malformed bearer")
    token = header[len(BEARER_PREFIX):].strip()
    if not token:
        raise AuthError("malformed bearer")

    user_id = services.tokens.verify(token)
    user = services.credentials.get(user_id)
    if user is None:
        raise AuthError("unauthorized")

    request.state.user = user
    return user

