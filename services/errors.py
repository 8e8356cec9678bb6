from typing import Iterable, List, Tuple

from services.models import Diagnostic


class ScheduleError(ValueError):
    """
    Base class for every failure the scheduling engine reports.
    Carries the structured diagnostics; str() is the newline-joined messages.
    """
    category = "schedule"

    def __init__(self, diagnostics: Iterable[Diagnostic]):
        self.diagnostics: Tuple[Diagnostic, ...] = tuple(diagnostics)
        super().__init__("\n".join(self.messages))

    @property
    def messages(self) -> List[str]:
        return [d.message for d in self.diagnostics]


class ValidationError(ScheduleError):
    category = "validation"


class CycleError(ScheduleError):
    category = "cycle"

    def __init__(self, cycle: Iterable[str]):
        self.cycle: Tuple[str, ...] = tuple(cycle)
        message = "Cycle detected in dependencies: " + " -> ".join(self.cycle)
        super().__init__([Diagnostic("cycle", message, tuple(dict.fromkeys(self.cycle)))])


class AnomalyError(ScheduleError):
    category = "anomaly"


class InternalConsistencyError(ScheduleError):
    category = "internal"
