"""In-meeting IDS stepper.

Tracks which queued issue the team is working and which IDS step it is on.
Nothing here is persisted; the only durable effect of a step is the
resolution recorded through the issues endpoint.
"""

from dataclasses import dataclass, field
from enum import Enum as PyEnum
from typing import Generic, TypeVar

from ..models import IssueOutcome

T = TypeVar("T")


class IDSStep(str, PyEnum):
    PRIORITIZE = "prioritize"
    IDENTIFY = "identify"
    DISCUSS = "discuss"
    SOLVE = "solve"


WORK_STEPS = [IDSStep.IDENTIFY, IDSStep.DISCUSS, IDSStep.SOLVE]


@dataclass
class IDSWorkflow(Generic[T]):
    """
    Step-state for working a list of issues.

    The list can only be reordered while prioritizing. Resolved issues keep
    their position: after a resolution the stepper jumps to the first
    unresolved issue further down the list, and stays put when there is none.
    """
    issues: list[T]
    current_index: int = 0
    step: IDSStep = IDSStep.PRIORITIZE
    outcomes: dict[int, IssueOutcome] = field(default_factory=dict)

    @property
    def current(self) -> T | None:
        if not self.issues:
            return None
        return self.issues[self.current_index]

    @property
    def is_complete(self) -> bool:
        return bool(self.issues) and len(self.outcomes) == len(self.issues)

    @property
    def remaining(self) -> list[T]:
        return [issue for i, issue in enumerate(self.issues) if i not in self.outcomes]

    def is_resolved(self, index: int) -> bool:
        return index in self.outcomes

    def move(self, index: int, direction: int) -> bool:
        """Swap an issue with its neighbour (-1 up, +1 down)."""
        if self.step != IDSStep.PRIORITIZE or direction not in (-1, 1):
            return False
        target = index + direction
        if not (0 <= index < len(self.issues) and 0 <= target < len(self.issues)):
            return False
        self.issues[index], self.issues[target] = self.issues[target], self.issues[index]
        return True

    def start(self) -> None:
        """Leave prioritization and open the first issue."""
        self.current_index = 0
        self.step = IDSStep.IDENTIFY

    def advance(self) -> IDSStep:
        """identify -> discuss -> solve; no-op on solve or while prioritizing."""
        if self.step in WORK_STEPS[:-1]:
            self.step = WORK_STEPS[WORK_STEPS.index(self.step) + 1]
        return self.step

    def back(self) -> IDSStep:
        if self.step in WORK_STEPS[1:]:
            self.step = WORK_STEPS[WORK_STEPS.index(self.step) - 1]
        return self.step

    def resolve(self, outcome: IssueOutcome | str) -> T | None:
        """Record an outcome for the current issue and return the next one to work."""
        if self.current is None or self.step == IDSStep.PRIORITIZE:
            return None
        self.outcomes[self.current_index] = IssueOutcome(outcome)
        self.step = IDSStep.IDENTIFY

        for index in range(self.current_index + 1, len(self.issues)):
            if index not in self.outcomes:
                self.current_index = index
                break
        return self.current
