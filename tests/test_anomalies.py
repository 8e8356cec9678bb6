import pytest

from services.anomalies import detect_anomalies, extract_critical_path
from services.errors import AnomalyError
from services.graph import build_graph, topological_order
from services.models import ScheduleEntry
from services.normalize import normalize_tasks
from services.scheduling import backward_pass, compute_floats, forward_pass, run_schedule


def computed(raw):
    """Run the passes without the anomaly gate."""
    graph = build_graph(normalize_tasks(raw))
    order = topological_order(graph)
    es, ef = forward_pass(graph, order)
    ls, lf = backward_pass(graph, order, ef)
    mt, ml = compute_floats(graph, es, ef, ls)
    entries = {
        t.id: ScheduleEntry(t, es[t.id], ef[t.id], ls[t.id], lf[t.id], mt[t.id], ml[t.id])
        for t in graph.tasks
    }
    return graph, entries, order


def anomalies_of(raw):
    return detect_anomalies(*computed(raw))


def by_kind(diagnostics):
    return {d.kind: d for d in diagnostics}


def test_clean_schedule_has_no_anomalies():
    assert anomalies_of([
        {"id": "A", "duration": 2},
        {"id": "B", "duration": 3, "predecessors": ["A"]},
    ]) == []


def test_isolated_task_is_reported():
    diagnostics = by_kind(anomalies_of([
        {"id": "A", "duration": 2},
        {"id": "B", "duration": 3, "predecessors": ["A"]},
        {"id": "C", "duration": 1, "predecessors": ["B"]},
        {"id": "X", "duration": 1},
    ]))
    assert diagnostics["isolated_task"].task_ids == ("X",)
    assert "X" in diagnostics["isolated_task"].message

    with pytest.raises(AnomalyError) as exc_info:
        run_schedule([
            {"id": "A", "duration": 2},
            {"id": "B", "duration": 3, "predecessors": ["A"]},
            {"id": "X", "duration": 1},
        ])
    assert "isolated_task" in [d.kind for d in exc_info.value.diagnostics]


def test_isolated_dummy_is_not_reported_as_isolated():
    diagnostics = by_kind(anomalies_of([
        {"id": "A", "duration": 2},
        {"id": "B", "duration": 3, "predecessors": ["A"]},
        {"id": "X", "isDummy": True},
    ]))
    assert "isolated_task" not in diagnostics


def test_non_converging_end_names_the_shorter_branch():
    diagnostics = by_kind(anomalies_of([
        {"id": "A", "duration": 2},
        {"id": "B", "duration": 3, "predecessors": ["A"]},
        {"id": "C", "duration": 1, "predecessors": ["A"]},
    ]))
    assert diagnostics["non_converging_end"].task_ids == ("C",)
    assert "converge to B" in diagnostics["non_converging_end"].message
    assert "ambiguous_final_task" not in diagnostics


def test_tied_end_tasks_are_ambiguous():
    diagnostics = by_kind(anomalies_of([
        {"id": "A", "duration": 2},
        {"id": "B", "duration": 3, "predecessors": ["A"]},
        {"id": "C", "duration": 3, "predecessors": ["A"]},
        {"id": "D", "duration": 1, "predecessors": ["A"]},
    ]))
    assert diagnostics["ambiguous_final_task"].task_ids == ("B", "C")
    assert diagnostics["non_converging_end"].task_ids == ("D",)


def test_dummy_on_critical_path_is_reported():
    raw = [
        {"id": "A", "duration": 3},
        {"id": "X", "isDummy": True, "predecessors": ["A"]},
        {"id": "B", "duration": 2, "predecessors": ["X"]},
    ]
    diagnostics = anomalies_of(raw)
    assert [(d.kind, d.task_ids) for d in diagnostics] == [("dummy_on_critical_path", ("X",))]

    with pytest.raises(AnomalyError, match="Dummy task X"):
        run_schedule(raw)


def test_parallel_zero_float_chains_are_disjoint():
    raw = [
        {"id": "A", "duration": 1},
        {"id": "B", "duration": 3, "predecessors": ["A"]},
        {"id": "C", "duration": 3, "predecessors": ["A"]},
        {"id": "D", "duration": 1, "predecessors": ["B", "C"]},
    ]
    diagnostics = anomalies_of(raw)
    assert [(d.kind, d.task_ids) for d in diagnostics] == [("disjoint_critical_path", ("B", "C"))]

    with pytest.raises(AnomalyError):
        extract_critical_path(*computed(raw))


def test_critical_path_follows_dependency_order():
    raw = [
        {"id": "D", "duration": 1, "predecessors": ["B", "C"]},
        {"id": "B", "duration": 3, "predecessors": ["A"]},
        {"id": "C", "duration": 5, "predecessors": ["A"]},
        {"id": "A", "duration": 2},
    ]
    assert extract_critical_path(*computed(raw)) == ["A", "C", "D"]


def test_disjoint_chain_wording_is_shared():
    raw = [
        {"id": "A", "duration": 1},
        {"id": "B", "duration": 3, "predecessors": ["A"]},
        {"id": "C", "duration": 3, "predecessors": ["A"]},
        {"id": "D", "duration": 1, "predecessors": ["B", "C"]},
    ]
    detected = anomalies_of(raw)
    with pytest.raises(AnomalyError) as exc_info:
        extract_critical_path(*computed(raw))
    assert list(exc_info.value.diagnostics) == detected
    assert "no link between B/C" in detected[0].message
