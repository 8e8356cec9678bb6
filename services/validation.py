import logging
from typing import Dict, List, Sequence, Set, Tuple

from services.errors import ValidationError
from services.graph import build_graph, find_cycle
from services.models import Diagnostic, Task

logger = logging.getLogger(__name__)


def _unique(diagnostics: List[Diagnostic]) -> List[Diagnostic]:
    seen: Set[str] = set()
    out: List[Diagnostic] = []
    for d in diagnostics:
        if d.message not in seen:
            seen.add(d.message)
            out.append(d)
    return out


def _duplicate_ids(tasks: Sequence[Task]) -> List[str]:
    groups: Dict[str, List[str]] = {}
    for task in tasks:
        if task.id:
            groups.setdefault(task.id.lower(), []).append(task.id)
    dups: List[str] = []
    for spellings in groups.values():
        if len(spellings) > 1:
            for spelling in spellings:
                if spelling not in dups:
                    dups.append(spelling)
    return dups


def _record_checks(tasks: Sequence[Task]) -> List[Diagnostic]:
    diagnostics: List[Diagnostic] = []

    for task in tasks:
        if not task.id:
            diagnostics.append(Diagnostic("missing_id", f"Task #{task.position} has no 'id'."))

    dups = _duplicate_ids(tasks)
    if dups:
        diagnostics.append(Diagnostic(
            "duplicate_id",
            f"Duplicate task ids found: {', '.join(dups)}",
            tuple(dups),
        ))

    ids = {t.id for t in tasks if t.id}
    for task in tasks:
        who = (task.id,) if task.id else ()

        if task.duration_issue == "missing":
            diagnostics.append(Diagnostic("missing_duration", f"{task.label}: missing 'duration'.", who))
        elif task.duration_issue == "invalid":
            diagnostics.append(Diagnostic("invalid_duration", f"{task.label}: 'duration' must be an integer.", who))
        elif not task.is_dummy and task.duration is not None and task.duration < 1:
            diagnostics.append(Diagnostic("non_positive_duration", f"{task.label}: 'duration' must be >= 1.", who))

        if task.is_dummy_issue:
            diagnostics.append(Diagnostic(
                "invalid_dummy_flag",
                f"{task.label}: 'isDummy' must be true or false.",
                who,
            ))

        if task.predecessors_issue:
            diagnostics.append(Diagnostic(
                "invalid_predecessors",
                f"{task.label}: 'predecessors' must be a list of task ids.",
                who,
            ))

        for pred in task.predecessors:
            if task.id and pred == task.id:
                diagnostics.append(Diagnostic("self_reference", f"{task.label}: cannot depend on itself.", who))
            elif pred not in ids:
                diagnostics.append(Diagnostic(
                    "unknown_predecessor",
                    f"{task.label}: predecessor '{pred}' does not exist.",
                    who + (pred,),
                ))

    return _unique(diagnostics)


def _endpoint_checks(tasks: Sequence[Task]) -> List[Diagnostic]:
    """
    With clean records a missing start or end task only happens on a looping
    graph, so the loop found is named in the message.
    """
    graph = build_graph(tasks)
    problems: List[Tuple[str, str]] = []
    if not graph.start_ids():
        problems.append(("no_start_task", "No start task: at least one task must have no predecessors"))
    if not graph.end_ids():
        problems.append(("no_end_task", "No end task: at least one task must not be a predecessor of another task"))
    if not problems:
        return []

    cycle = find_cycle(graph) or []
    suffix = f" (circular dependency: {' -> '.join(cycle)})" if cycle else ""
    members = tuple(dict.fromkeys(cycle))
    return [Diagnostic(kind, f"{text}{suffix}.", members) for kind, text in problems]


def validate_tasks(tasks: Sequence[Task]) -> Sequence[Task]:
    """
    Validate a normalized task set:
      - every task has a non-empty, case-insensitively unique 'id'
      - 'duration' is an integer >= 1 (dummy tasks are fixed at 0)
      - 'isDummy', when given, is a boolean
      - 'predecessors' name existing tasks, never the task itself
      - at least one start task and one end task exist
    All record problems are reported together; the start/end checks only run
    once the records themselves are clean.
    Raises ValidationError, returns the task set unchanged otherwise.
    """
    if not tasks:
        raise ValidationError([Diagnostic(
            "empty_task_set", "Input must be a non-empty list of task objects"
        )])

    diagnostics = _record_checks(tasks)
    if not diagnostics:
        diagnostics = _endpoint_checks(tasks)

    if diagnostics:
        logger.info(f"Task set rejected with {len(diagnostics)} validation problem(s)")
        raise ValidationError(diagnostics)
    return tasks
