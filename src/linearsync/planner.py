from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from .logging import StructuredLogger, get_logger
from .models import DestinationIssue, MatchedPair, TrackedField, UpdateIntent
from .translate import AssigneeTranslator, translate_priority


@dataclass
class PlanStats:
    pairs: int = 0
    planned: int = 0
    unchanged: int = 0
    unresolved: int = 0


def current_value(destination: DestinationIssue, tracked_field: TrackedField) -> str | int | None:
    if tracked_field is TrackedField.PRIORITY:
        return destination.priority
    return destination.assignee_id


def needs_update(destination: DestinationIssue, tracked_field: TrackedField, target: str | int) -> bool:
    return current_value(destination, tracked_field) != target


class UpdatePlanner:
    """Turn matched pairs into the minimal list of single-field updates.

    Intents follow pair order (GitHub collection order, then Linear match
    order). Planning is read-only, so planning again after the intents have
    been applied yields nothing.
    """

    def __init__(
        self,
        tracked_field: TrackedField,
        assignees: AssigneeTranslator | None = None,
        logger: StructuredLogger | None = None,
    ):
        if tracked_field is TrackedField.ASSIGNEE and assignees is None:
            raise ValueError("assignee planning requires an AssigneeTranslator")
        self.tracked_field = tracked_field
        self.assignees = assignees
        self.logger = logger or get_logger()
        self.stats = PlanStats()

    def _target(self, pair: MatchedPair) -> str | int | None:
        if self.tracked_field is TrackedField.PRIORITY:
            return translate_priority(pair.source.raw_value)
        if not pair.source.raw_value or self.assignees is None:
            return None
        return self.assignees.translate(pair.source.raw_value)

    def _context(self, pair: MatchedPair, target: str | int) -> dict[str, str | None]:
        if self.tracked_field is not TrackedField.ASSIGNEE or self.assignees is None:
            return {}
        return {
            "old_display": pair.destination.assignee_name,
            "new_display": self.assignees.display_name(str(target)),
        }

    def plan(self, pairs: Iterable[MatchedPair]) -> list[UpdateIntent]:
        stats = PlanStats()
        intents: list[UpdateIntent] = []
        for pair in pairs:
            stats.pairs += 1
            target = self._target(pair)
            if target is None:
                stats.unresolved += 1
                self.logger.info(
                    f"no Linear {self.tracked_field.value} for GitHub value "
                    f"'{pair.source.raw_value}' (#{pair.source.number})",
                    operation="plan",
                    issue_number=pair.source.number,
                )
                continue
            if not needs_update(pair.destination, self.tracked_field, target):
                stats.unchanged += 1
                continue
            intents.append(
                UpdateIntent(
                    destination_id=pair.destination.id,
                    field=self.tracked_field,
                    old_value=current_value(pair.destination, self.tracked_field),
                    new_value=target,
                    destination_identifier=pair.destination.identifier,
                    source_number=pair.source.number,
                    source_url=pair.source.url,
                    source_value=pair.source.raw_value,
                    context=self._context(pair, target),
                )
            )
        stats.planned = len(intents)
        self.stats = stats
        self.logger.log_operation(
            "plan_complete",
            field=self.tracked_field.value,
            planned=stats.planned,
            unchanged=stats.unchanged,
            unresolved=stats.unresolved,
        )
        return intents


__all__ = ["PlanStats", "UpdatePlanner", "current_value", "needs_update"]
