"""GitHub -> Linear actor resolution.

Resolution order, first hit wins:

1. override table (GitHub login -> Linear display name or email)
2. email, case-insensitive
3. GitHub display name against Linear display name, case-insensitive
4. GitHub login against Linear display name, case-insensitive

Only exact matches count. A wrong assignee is silently wrong data in Linear,
so an unresolved actor is always preferred over a guessed one. A key shared
by several Linear users is ambiguous and counts as no match at that step.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from .logging import StructuredLogger, get_logger
from .models import ActorIdentity, DestinationActor


class ResolutionCache:
    """Per-run memo of handle -> Linear user id (``None`` for a resolved miss).

    Entries are never invalidated; a fresh cache is created for every run.
    """

    def __init__(self) -> None:
        self._entries: dict[str, str | None] = {}

    def __contains__(self, handle: object) -> bool:
        return handle in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, handle: str) -> str | None:
        return self._entries.get(handle)

    def store(self, handle: str, actor_id: str | None) -> None:
        self._entries.setdefault(handle, actor_id)


class ActorIndex:
    """Linear users keyed by lower-cased email and lower-cased display name.

    A key shared by more than one user is ambiguous and never resolves.
    """

    def __init__(self, actors: Iterable[DestinationActor]):
        self.actors: list[DestinationActor] = list(actors)
        self.by_email: dict[str, list[DestinationActor]] = {}
        self.by_name: dict[str, list[DestinationActor]] = {}
        for actor in self.actors:
            if actor.email:
                self.by_email.setdefault(actor.email.lower(), []).append(actor)
            self.by_name.setdefault(actor.display_name.lower(), []).append(actor)

    def get_by_id(self, actor_id: str | None) -> DestinationActor | None:
        if actor_id is None:
            return None
        for actor in self.actors:
            if actor.id == actor_id:
                return actor
        return None

    def email_candidates(self, value: str) -> list[DestinationActor]:
        return self.by_email.get(value.lower(), [])

    def name_candidates(self, value: str) -> list[DestinationActor]:
        return self.by_name.get(value.lower(), [])

    def lookup_key(self, value: str) -> DestinationActor | None:
        """Match ``value`` against either index key; ``None`` unless exactly one user fits."""
        key = value.strip()
        for found in (self.email_candidates(key), self.name_candidates(key)):
            if found:
                return found[0] if len(found) == 1 else None
        return None


class IdentityResolver:
    def __init__(
        self,
        overrides: Mapping[str, str] | None = None,
        cache: ResolutionCache | None = None,
        logger: StructuredLogger | None = None,
    ):
        self.overrides = dict(overrides or {})
        self.cache = cache if cache is not None else ResolutionCache()
        self.logger = logger or get_logger()

    def resolve(
        self, actor: ActorIdentity, candidates: ActorIndex | Iterable[DestinationActor]
    ) -> str | None:
        if actor.handle in self.cache:
            return self.cache.get(actor.handle)
        index = candidates if isinstance(candidates, ActorIndex) else ActorIndex(candidates)
        match, strategy = self._match(actor, index)
        if match is None:
            self.logger.info(
                f"no Linear user found for GitHub user '{actor.handle}'",
                operation="resolve_actor",
                handle=actor.handle,
            )
            self.cache.store(actor.handle, None)
            return None
        self.logger.debug(
            f"resolved GitHub user '{actor.handle}' to {match.display_name} via {strategy}",
            operation="resolve_actor",
            handle=actor.handle,
            strategy=strategy,
        )
        self.cache.store(actor.handle, match.id)
        return match.id

    def _match(
        self, actor: ActorIdentity, index: ActorIndex
    ) -> tuple[DestinationActor | None, str]:
        target = self.overrides.get(actor.handle)
        if target:
            found = self._match_override(actor.handle, target, index)
            if found is not None:
                return found, "override"
            self.logger.warning(
                f"override for '{actor.handle}' points at unknown Linear user '{target}'",
                operation="resolve_actor",
                handle=actor.handle,
            )
        steps = [
            ("email", index.email_candidates(actor.email) if actor.email else []),
            (
                "display_name",
                index.name_candidates(actor.display_name) if actor.display_name else [],
            ),
            ("login", index.name_candidates(actor.handle)),
        ]
        for strategy, found in steps:
            unique = self._single(actor.handle, strategy, found)
            if unique is not None:
                return unique, strategy
        return None, "none"

    def _match_override(
        self, handle: str, target: str, index: ActorIndex
    ) -> DestinationActor | None:
        target = target.strip()
        by_name = index.name_candidates(target)
        if by_name:
            return self._single(handle, "override", by_name)
        return self._single(handle, "override", index.email_candidates(target))

    def _single(
        self, handle: str, strategy: str, found: list[DestinationActor]
    ) -> DestinationActor | None:
        if len(found) == 1:
            return found[0]
        if found:
            names = ", ".join(f"{c.display_name} ({c.id})" for c in found)
            self.logger.warning(
                f"GitHub user '{handle}' matches several Linear users by {strategy}: {names}",
                operation="resolve_actor",
                handle=handle,
                strategy=strategy,
            )
        return None


__all__ = ["ActorIndex", "IdentityResolver", "ResolutionCache"]
