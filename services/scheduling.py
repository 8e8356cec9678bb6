import logging
from typing import Any, Dict, List, Sequence, Tuple

from services.anomalies import detect_anomalies, extract_critical_path
from services.errors import AnomalyError, InternalConsistencyError, ScheduleError
from services.graph import TaskGraph, build_graph, check_acyclic, topological_order
from services.models import (
    Diagnostic,
    ScheduleEntry,
    ScheduleFailure,
    ScheduleResult,
    ScheduleSuccess,
)
from services.normalize import normalize_tasks
from services.validation import validate_tasks

logger = logging.getLogger(__name__)


def forward_pass(graph: TaskGraph, order: Sequence[str]) -> Tuple[Dict[str, int], Dict[str, int]]:
    """Earliest start/finish; every predecessor comes earlier in `order`."""
    es: Dict[str, int] = {}
    ef: Dict[str, int] = {}
    for taskId in order:
        es[taskId] = max((ef[p] for p in graph.predecessors[taskId]), default=0)
        ef[taskId] = es[taskId] + (graph.task(taskId).duration or 0)
    return es, ef


def backward_pass(
    graph: TaskGraph,
    order: Sequence[str],
    ef: Dict[str, int],
) -> Tuple[Dict[str, int], Dict[str, int]]:
    """Latest start/finish, walking `order` backwards from the project end."""
    projectDuration = max(ef.values(), default=0)
    ls: Dict[str, int] = {}
    lf: Dict[str, int] = {}
    for taskId in reversed(order):
        lf[taskId] = min((ls[s] for s in graph.successors[taskId]), default=projectDuration)
        ls[taskId] = lf[taskId] - (graph.task(taskId).duration or 0)
    return ls, lf


def compute_floats(
    graph: TaskGraph,
    es: Dict[str, int],
    ef: Dict[str, int],
    ls: Dict[str, int],
) -> Tuple[Dict[str, int], Dict[str, int]]:
    """
    Total float (LS - ES) and free float (earliest successor start - EF).
    Free float counts every direct successor, dummy tasks included.
    A negative float means the passes are inconsistent and is never clamped.
    """
    mt: Dict[str, int] = {}
    ml: Dict[str, int] = {}
    for taskId in graph.ids:
        mt[taskId] = ls[taskId] - es[taskId]
        succs = graph.successors[taskId]
        ml[taskId] = min(es[s] for s in succs) - ef[taskId] if succs else 0

    negative = [taskId for taskId in graph.ids if mt[taskId] < 0 or ml[taskId] < 0]
    if negative:
        logger.error(f"Negative float computed for: {', '.join(negative)}")
        raise InternalConsistencyError([
            Diagnostic(
                "negative_float",
                f"Internal error: task {taskId} has negative float (MT={mt[taskId]}, ML={ml[taskId]}).",
                (taskId,),
            )
            for taskId in negative
        ])
    return mt, ml


def run_schedule(raw_tasks: Sequence[Any]) -> ScheduleSuccess:
    """
    Full CPM pipeline over one task set:
    normalize -> validate -> cycle check -> topological sort ->
    forward/backward pass -> floats -> anomaly checks -> critical path.
    Raises a ScheduleError subclass on the first failing stage.
    """
    tasks = validate_tasks(normalize_tasks(raw_tasks))
    graph = check_acyclic(build_graph(tasks))
    order = topological_order(graph)

    es, ef = forward_pass(graph, order)
    ls, lf = backward_pass(graph, order, ef)
    mt, ml = compute_floats(graph, es, ef, ls)

    entries: Dict[str, ScheduleEntry] = {
        t.id: ScheduleEntry(
            task=t,
            es=es[t.id],
            ef=ef[t.id],
            ls=ls[t.id],
            lf=lf[t.id],
            mt=mt[t.id],
            ml=ml[t.id],
        )
        for t in graph.tasks
    }

    anomalies = detect_anomalies(graph, entries, order)
    if anomalies:
        raise AnomalyError(anomalies)

    critical_path = extract_critical_path(graph, entries, order)
    projectDuration = max(ef.values())
    logger.info(
        f"Scheduled {len(entries)} tasks: duration {projectDuration}, "
        f"critical path {' -> '.join(critical_path)}"
    )
    return ScheduleSuccess(
        entries=tuple(entries[t.id] for t in graph.tasks),
        order=tuple(order),
        critical_path=tuple(critical_path),
        project_duration=projectDuration,
    )


def compute_schedule(raw_tasks: Sequence[Any]) -> ScheduleResult:
    """Same as run_schedule, but failures come back as a ScheduleFailure."""
    try:
        return run_schedule(raw_tasks)
    except ScheduleError as e:
        return ScheduleFailure(category=e.category, diagnostics=e.diagnostics)


def failure_to_dict(failure: ScheduleFailure) -> Dict[str, Any]:
    return {
        "ok": False,
        "category": failure.category,
        "error": failure.message,
        "diagnostics": [d.to_dict() for d in failure.diagnostics],
    }


def schedule_to_dict(schedule: ScheduleSuccess) -> Dict[str, Any]:
    result_tasks: List[Dict[str, Any]] = [e.to_dict() for e in schedule.entries]
    return {
        "project_duration": schedule.project_duration,
        "task_count": len(result_tasks),
        "order": list(schedule.order),
        "critical_path": list(schedule.critical_path),
        "critical_path_label": " → ".join(schedule.critical_path),
        "tasks": result_tasks,
    }


def analyze_schedule(raw_tasks: Sequence[Any]) -> Dict[str, Any]:
    """JSON-ready analysis of a task set. Raises ScheduleError on failure."""
    return schedule_to_dict(run_schedule(raw_tasks))
