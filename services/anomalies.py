import logging
from typing import List, Mapping, Sequence, Tuple

from services.errors import AnomalyError
from services.graph import TaskGraph
from services.models import Diagnostic, ScheduleEntry

logger = logging.getLogger(__name__)


def isolated_tasks(graph: TaskGraph) -> List[str]:
    if len(graph.tasks) <= 1:
        return []
    return [
        t.id for t in graph.tasks
        if not t.is_dummy and not graph.predecessors[t.id] and not graph.successors[t.id]
    ]


def critical_task_ids(entries: Mapping[str, ScheduleEntry], order: Sequence[str]) -> List[str]:
    return [taskId for taskId in order if entries[taskId].critical]


def critical_path_breaks(graph: TaskGraph, path: Sequence[str]) -> List[Tuple[str, str]]:
    """Consecutive pairs of the path that are not joined by a dependency."""
    return [
        (a, b) for a, b in zip(path, path[1:])
        if a not in graph.predecessors[b]
    ]


def _disjoint_path(breaks: Sequence[Tuple[str, str]]) -> Diagnostic:
    pairs = ", ".join(f"{a}/{b}" for a, b in breaks)
    return Diagnostic(
        "disjoint_critical_path",
        f"Multiple or disconnected critical paths detected (no link between {pairs}). "
        f"Check task links or durations!",
        tuple(dict.fromkeys(taskId for pair in breaks for taskId in pair)),
    )


def _convergence(graph: TaskGraph, entries: Mapping[str, ScheduleEntry]) -> List[Diagnostic]:
    ends = graph.end_ids()
    if len(ends) <= 1:
        return []

    diagnostics: List[Diagnostic] = []
    finish = max(entries[taskId].ef for taskId in ends)
    finals = [taskId for taskId in ends if entries[taskId].ef == finish]
    others = [taskId for taskId in ends if entries[taskId].ef < finish]

    if len(finals) > 1:
        diagnostics.append(Diagnostic(
            "ambiguous_final_task",
            f"Logic error: several end tasks finish at {finish}, so the final task is ambiguous: "
            f"{', '.join(finals)}",
            tuple(finals),
        ))
    if others:
        target = finals[0] if len(finals) == 1 else "a single final task"
        diagnostics.append(Diagnostic(
            "non_converging_end",
            f"Logic error: The project must converge to a single final task. "
            f"The following tasks do not converge to {target}: {', '.join(others)}",
            tuple(others),
        ))
    return diagnostics


def detect_anomalies(
    graph: TaskGraph,
    entries: Mapping[str, ScheduleEntry],
    order: Sequence[str],
) -> List[Diagnostic]:
    """
    Logic checks over a computed schedule:
      - isolated tasks (no predecessors and no successors)
      - end tasks that do not converge to the single final task
      - dummy tasks with zero total float
      - zero-float tasks that do not form one connected chain
    The last check only runs when the others found nothing.
    """
    diagnostics: List[Diagnostic] = []

    isolated = isolated_tasks(graph)
    if isolated:
        diagnostics.append(Diagnostic(
            "isolated_task",
            f"The following tasks are isolated (without predecessors or successors): {', '.join(isolated)}",
            tuple(isolated),
        ))

    diagnostics.extend(_convergence(graph, entries))

    for taskId in order:
        entry = entries[taskId]
        if entry.task.is_dummy and entry.mt == 0:
            diagnostics.append(Diagnostic(
                "dummy_on_critical_path",
                f"Dummy task {taskId} lies on the critical path; dummy tasks must not carry the schedule.",
                (taskId,),
            ))

    if not diagnostics:
        path = critical_task_ids(entries, order)
        breaks = critical_path_breaks(graph, path)
        if breaks:
            diagnostics.append(_disjoint_path(breaks))

    if diagnostics:
        logger.info(f"Schedule rejected with {len(diagnostics)} anomaly(ies)")
    return diagnostics


def extract_critical_path(
    graph: TaskGraph,
    entries: Mapping[str, ScheduleEntry],
    order: Sequence[str],
) -> List[str]:
    """
    Non-dummy zero-float tasks in dependency order.
    Raises AnomalyError when they do not form a single chain.
    """
    path = critical_task_ids(entries, order)
    breaks = critical_path_breaks(graph, path)
    if breaks:
        raise AnomalyError([_disjoint_path(breaks)])
    return path
