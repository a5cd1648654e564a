"""GitHub field values -> Linear native values.

Both translations are total: unrecognised input maps to a neutral value
(priority 0, or no assignee) instead of raising.
"""

from __future__ import annotations

from collections.abc import Callable

from .errors import TransportError, redact
from .identity import ActorIndex, IdentityResolver
from .logging import StructuredLogger, get_logger
from .models import ActorIdentity

NO_PRIORITY = 0
# Linear: 0 none, 1 urgent, 2 high, 3 medium, 4 low
PRIORITY_TOKENS: tuple[tuple[str, int], ...] = (("p1", 1), ("p2", 2), ("p3", 3))


def translate_priority(raw: str | None) -> int:
    """Map a GitHub priority label such as ``"P1 - Urgent"`` to a Linear priority."""
    if not raw:
        return NO_PRIORITY
    lowered = raw.lower()
    for token, value in PRIORITY_TOKENS:
        if token in lowered:
            return value
    return NO_PRIORITY


def has_priority_token(raw: str | None) -> bool:
    return translate_priority(raw) != NO_PRIORITY


ActorLookup = Callable[[str], "ActorIdentity | None"]


class AssigneeTranslator:
    """Translate a GitHub login into a Linear user id.

    GitHub profile details (name, public email) are fetched once per login and
    only when the resolver has not already seen that login in this run.
    """

    def __init__(
        self,
        resolver: IdentityResolver,
        actors: ActorIndex,
        lookup_details: ActorLookup,
        logger: StructuredLogger | None = None,
    ):
        self.resolver = resolver
        self.actors = actors
        self.lookup_details = lookup_details
        self.logger = logger or get_logger()

    def translate(self, handle: str | None) -> str | None:
        if not handle:
            return None
        if handle in self.resolver.cache:
            return self.resolver.cache.get(handle)
        return self.resolver.resolve(self._identity_for(handle), self.actors)

    def display_name(self, actor_id: str | None) -> str | None:
        actor = self.actors.get_by_id(actor_id)
        return actor.display_name if actor else None

    def _identity_for(self, handle: str) -> ActorIdentity:
        try:
            details = self.lookup_details(handle)
        except TransportError as exc:
            self.logger.warning(
                f"could not fetch GitHub profile for '{handle}'; matching on login only",
                operation="actor_details",
                handle=handle,
                error=redact(str(exc)),
            )
            return ActorIdentity(handle=handle)
        if details is None:
            self.logger.info(
                f"GitHub user '{handle}' not found; matching on login only",
                operation="actor_details",
                handle=handle,
            )
            return ActorIdentity(handle=handle)
        # keep the login the issue was assigned to as the cache key
        return ActorIdentity(handle=handle, display_name=details.display_name, email=details.email)


__all__ = [
    "NO_PRIORITY",
    "PRIORITY_TOKENS",
    "AssigneeTranslator",
    "has_priority_token",
    "translate_priority",
]
