"""
Outcome of a best-effort step.

Hooks and suggestion generators never raise to their callers. Internally
each step still reports what happened (succeeded / skipped / failed) so
the boundary can log it and tests can assert on it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class OutcomeStatus(str, Enum):
    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class Outcome:
    status: OutcomeStatus
    reason: str | None = None
    error: BaseException | None = None

    @classmethod
    def succeeded(cls, reason: str | None = None) -> "Outcome":
        return cls(OutcomeStatus.SUCCEEDED, reason)

    @classmethod
    def skipped(cls, reason: str) -> "Outcome":
        return cls(OutcomeStatus.SKIPPED, reason)

    @classmethod
    def failed(cls, error: BaseException) -> "Outcome":
        return cls(OutcomeStatus.FAILED, str(error), error)

    @property
    def ok(self) -> bool:
        return self.status is not OutcomeStatus.FAILED
