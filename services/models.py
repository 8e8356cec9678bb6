from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union


@dataclass(frozen=True)
class Task:
    id: str
    duration: Optional[int]
    predecessors: Tuple[str, ...] = ()
    is_dummy: bool = False
    position: int = 0
    # "missing" or "invalid" when duration could not be read
    duration_issue: Optional[str] = None
    predecessors_issue: Optional[str] = None
    is_dummy_issue: Optional[str] = None

    @property
    def label(self) -> str:
        return f"Task {self.id}" if self.id else f"Task #{self.position}"


@dataclass(frozen=True)
class ScheduleEntry:
    task: Task
    es: int
    ef: int
    ls: int
    lf: int
    mt: int
    ml: int

    @property
    def id(self) -> str:
        return self.task.id

    @property
    def duration(self) -> int:
        return self.task.duration or 0

    @property
    def critical(self) -> bool:
        return self.mt == 0 and not self.task.is_dummy

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "duration": self.duration,
            "predecessors": list(self.task.predecessors),
            "is_dummy": self.task.is_dummy,
            "es": self.es,
            "ef": self.ef,
            "ls": self.ls,
            "lf": self.lf,
            "mt": self.mt,
            "ml": self.ml,
            "critical": self.critical,
        }


@dataclass(frozen=True)
class Diagnostic:
    kind: str
    message: str
    task_ids: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message, "task_ids": list(self.task_ids)}


@dataclass(frozen=True)
class ScheduleSuccess:
    entries: Tuple[ScheduleEntry, ...]
    order: Tuple[str, ...]
    critical_path: Tuple[str, ...]
    project_duration: int
    ok: bool = field(default=True, init=False)

    def entry(self, task_id: str) -> ScheduleEntry:
        for e in self.entries:
            if e.id == task_id:
                return e
        raise KeyError(task_id)


@dataclass(frozen=True)
class ScheduleFailure:
    category: str
    diagnostics: Tuple[Diagnostic, ...]
    ok: bool = field(default=False, init=False)

    @property
    def messages(self) -> List[str]:
        return [d.message for d in self.diagnostics]

    @property
    def message(self) -> str:
        return "\n".join(self.messages)

    def kinds(self) -> List[str]:
        return [d.kind for d in self.diagnostics]


ScheduleResult = Union[ScheduleSuccess, ScheduleFailure]
