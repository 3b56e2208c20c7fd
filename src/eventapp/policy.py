"""Pluggable checks on who may change an event."""

from .errors import ForbiddenError
from .models.event import Event
from .models.user import User


class EventAccessPolicy:
    """Decides whether a caller may change an event or its attendee list."""

    name = "base"

    def authorize(self, user: User, event: Event) -> None:
        raise NotImplementedError


class OpenAccessPolicy(EventAccessPolicy):
    """Any authenticated caller may change any event."""

    name = "open"

    def authorize(self, user: User, event: Event) -> None:
        return None


class OwnerOnlyPolicy(EventAccessPolicy):
    name = "owner"

    def authorize(self, user: User, event: Event) -> None:
        if event.owner_id != user.id:
            raise ForbiddenError("Only the event owner may do this")


POLICIES = {policy.name: policy for policy in (OpenAccessPolicy, OwnerOnlyPolicy)}


def build_policy(name: str) -> EventAccessPolicy:
    try:
        return POLICIES[name]()
    except KeyError:
        raise ValueError(f"unknown event access policy {name!r}") from None
