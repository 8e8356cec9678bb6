import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple

from services.errors import CycleError, InternalConsistencyError
from services.models import Diagnostic, Task

logger = logging.getLogger(__name__)

UNVISITED, IN_PROGRESS, DONE = 0, 1, 2


@dataclass(frozen=True)
class TaskGraph:
    """
    Dependency graph of one validated task set.
    Built once per computation and handed from stage to stage.
    """
    tasks: Tuple[Task, ...]
    index: Mapping[str, int]
    predecessors: Mapping[str, Tuple[str, ...]]
    successors: Mapping[str, Tuple[str, ...]]

    @property
    def ids(self) -> List[str]:
        return [t.id for t in self.tasks]

    def task(self, task_id: str) -> Task:
        return self.tasks[self.index[task_id]]

    def start_ids(self) -> List[str]:
        return [t.id for t in self.tasks if not self.predecessors[t.id]]

    def end_ids(self) -> List[str]:
        return [t.id for t in self.tasks if not self.successors[t.id]]


def build_graph(tasks: Sequence[Task]) -> TaskGraph:
    index: Dict[str, int] = {}
    preds: Dict[str, Tuple[str, ...]] = {}
    succs: Dict[str, List[str]] = {}
    for i, task in enumerate(tasks):
        index[task.id] = i
        preds[task.id] = tuple(task.predecessors)
        succs[task.id] = []

    for task in tasks:
        for pred in task.predecessors:
            succs[pred].append(task.id)

    return TaskGraph(
        tasks=tuple(tasks),
        index=index,
        predecessors=preds,
        successors={taskId: tuple(s) for taskId, s in succs.items()},
    )


def find_cycle(graph: TaskGraph) -> Optional[List[str]]:
    """
    Three-colour depth-first search over the predecessor relation, with an
    explicit stack so deep chains do not hit the recursion limit.
    Returns the first cycle found in dependency order, closed on its first
    task (e.g. ["A", "B", "C", "A"] for A -> B -> C -> A), or None.
    Dummy tasks take part like any other task.
    """
    color: Dict[str, int] = {taskId: UNVISITED for taskId in graph.ids}

    for start in graph.ids:
        if color[start] != UNVISITED:
            continue

        color[start] = IN_PROGRESS
        path: List[str] = [start]
        pending: List[Iterator[str]] = [iter(graph.predecessors[start])]

        while pending:
            descended = False
            for pred in pending[-1]:
                if color[pred] == IN_PROGRESS:
                    members = path[path.index(pred):]
                    # path runs successor -> predecessor; flip it to dependency order
                    return [members[0]] + members[:0:-1] + [members[0]]
                if color[pred] == UNVISITED:
                    color[pred] = IN_PROGRESS
                    path.append(pred)
                    pending.append(iter(graph.predecessors[pred]))
                    descended = True
                    break
            if not descended:
                color[path.pop()] = DONE
                pending.pop()

    return None


def check_acyclic(graph: TaskGraph) -> TaskGraph:
    cycle = find_cycle(graph)
    if cycle is not None:
        logger.info(f"Circular dependency found: {' -> '.join(cycle)}")
        raise CycleError(cycle)
    return graph


def topological_order(graph: TaskGraph) -> List[str]:
    """
    Kahn's algorithm. Ties are broken by input order so the result is stable.
    """
    dependenciesCount: Dict[str, int] = {
        taskId: len(graph.predecessors[taskId]) for taskId in graph.ids
    }
    queue: Deque[str] = deque([
        taskId
        for taskId, depCount in dependenciesCount.items()
        if depCount == 0
    ])
    topologicalOrder: List[str] = []

    while queue:
        currentTaskId = queue.popleft()
        topologicalOrder.append(currentTaskId)

        for dependentTaskId in graph.successors[currentTaskId]:
            dependenciesCount[dependentTaskId] -= 1
            if dependenciesCount[dependentTaskId] == 0:
                queue.append(dependentTaskId)

    if len(topologicalOrder) != len(graph.tasks):
        missing = [taskId for taskId in graph.ids if dependenciesCount[taskId] > 0]
        logger.error(f"Topological sort stopped after {len(topologicalOrder)} of {len(graph.tasks)} tasks")
        raise InternalConsistencyError([Diagnostic(
            "incomplete_order",
            f"Internal error: topological order covers {len(topologicalOrder)} of "
            f"{len(graph.tasks)} tasks (unordered: {', '.join(missing)}).",
            tuple(missing),
        )])
    return topologicalOrder
