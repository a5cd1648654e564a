"""Apply planned updates to Linear, one call per intent.

Every intent is attempted exactly once. A failure is classified, logged with
enough context to act on it and recorded in the report; the remaining intents
still run. Re-running the sync is the retry mechanism.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from .errors import TransportError, classify_error, redact
from .logging import StructuredLogger, get_logger
from .models import TrackedField, UpdateIntent
from .protocols import DestinationApi


@dataclass
class UpdateOutcome:
    intent: UpdateIntent
    applied: bool
    error: str | None = None
    category: str | None = None
    transient: bool = False

    def to_dict(self) -> dict[str, Any]:
        intent = self.intent
        return {
            "destination_id": intent.destination_id,
            "identifier": intent.destination_identifier,
            "field": intent.field.value,
            "old": intent.old_value,
            "new": intent.new_value,
            "source_number": intent.source_number,
            "applied": self.applied,
            "error": self.error,
            "category": self.category,
        }


@dataclass
class ExecutionReport:
    outcomes: list[UpdateOutcome] = field(default_factory=list)
    dry_run: bool = False

    @property
    def applied(self) -> int:
        return sum(1 for o in self.outcomes if o.applied)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.applied)

    @property
    def failures(self) -> list[UpdateOutcome]:
        return [o for o in self.outcomes if not o.applied]


class UpdateExecutor:
    def __init__(
        self,
        api: DestinationApi,
        *,
        dry_run: bool = False,
        logger: StructuredLogger | None = None,
    ):
        self.api = api
        self.dry_run = dry_run
        self.logger = logger or get_logger()

    def _apply(self, intent: UpdateIntent) -> None:
        if intent.field is TrackedField.PRIORITY:
            self.api.update_issue(intent.destination_id, priority=int(intent.new_value or 0))
        else:
            self.api.update_issue(intent.destination_id, assignee_id=str(intent.new_value))

    def execute(self, intents: Iterable[UpdateIntent]) -> ExecutionReport:
        report = ExecutionReport(dry_run=self.dry_run)
        for intent in intents:
            if not self.dry_run:
                try:
                    self._apply(intent)
                except TransportError as exc:
                    info = classify_error(exc)
                    report.outcomes.append(
                        UpdateOutcome(
                            intent=intent,
                            applied=False,
                            error=info.message,
                            category=info.category,
                            transient=info.transient,
                        )
                    )
                    self.logger.log_error(
                        f"failed to update {intent.describe()}",
                        error=redact(str(exc)),
                        operation=f"update_{intent.field.value}",
                        destination_id=intent.destination_id,
                        field=intent.field.value,
                        old_value=intent.old_value,
                        new_value=intent.new_value,
                        issue_number=intent.source_number,
                        category=info.category,
                    )
                    continue
            report.outcomes.append(UpdateOutcome(intent=intent, applied=True))
            self.logger.log_update(
                intent.describe(),
                intent.destination_id,
                intent.field.value,
                dry_run=self.dry_run,
                issue_number=intent.source_number,
            )
        return report


__all__ = ["ExecutionReport", "UpdateExecutor", "UpdateOutcome"]
