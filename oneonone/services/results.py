"""
Tagged results for workflow operations.

Expected-but-disallowed requests (wrong state, wrong party, double booking)
are reported as a result value instead of raising.
"""
import enum
from dataclasses import dataclass
from typing import Any, Optional


class Outcome(str, enum.Enum):
    OK = "ok"
    INVALID_TRANSITION = "invalid_transition"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    VALIDATION = "validation"


@dataclass
class TransitionResult:
    outcome: Outcome
    value: Any = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome == Outcome.OK

    @classmethod
    def success(cls, value: Any = None) -> "TransitionResult":
        return cls(Outcome.OK, value)

    @classmethod
    def rejected(cls, outcome: Outcome, message: str) -> "TransitionResult":
        return cls(outcome, None, message)
