# cpm_selftest.py
from services.errors import AnomalyError, CycleError
from services.scheduling import analyze_schedule


def task_map(tasks_list):
    """Helper: index tasks by id."""
    return {t["id"]: t for t in tasks_list}


def assert_times(task, expected, msg):
    got = tuple(task[k] for k in ("es", "ef", "ls", "lf", "mt", "ml"))
    assert got == expected, f"{msg}: expected {expected}, got {got}"


def test_linear_chain():
    # A(2) -> B(3) -> C(4)  => project = 9, all critical
    tasks = [
        {"id": "A", "duration": 2, "predecessors": []},
        {"id": "B", "duration": 3, "predecessors": ["A"]},
        {"id": "C", "duration": 4, "predecessors": ["B"]},
    ]
    res = analyze_schedule(tasks)
    m = task_map(res["tasks"])

    assert_times(m["A"], (0, 2, 0, 2, 0, 0), "A")
    assert_times(m["B"], (2, 5, 2, 5, 0, 0), "B")
    assert_times(m["C"], (5, 9, 5, 9, 0, 0), "C")

    for tid in ("A", "B", "C"):
        assert m[tid]["critical"] is True, f"{tid} should be critical"

    assert res["project_duration"] == 9, "Project duration (linear)"
    assert res["critical_path"] == ["A", "B", "C"]


def test_two_branches_with_dummy_link():
    # A(3) -> B(4) ----------> E(2)
    # A(3) -> C(2) -> X(dummy) -^
    #          C(2) -> D(1) ----^
    tasks = [
        {"id": "A", "duration": 3, "predecessors": []},
        {"id": "B", "duration": 4, "predecessors": ["A"]},
        {"id": "C", "duration": 2, "predecessors": ["A"]},
        {"id": "X", "duration": None, "predecessors": ["C"], "isDummy": True},
        {"id": "D", "duration": 1, "predecessors": ["C"]},
        {"id": "E", "duration": 2, "predecessors": ["B", "X", "D"]},
    ]
    res = analyze_schedule(tasks)
    m = task_map(res["tasks"])

    assert_times(m["A"], (0, 3, 0, 3, 0, 0), "A")
    assert_times(m["B"], (3, 7, 3, 7, 0, 0), "B")
    assert_times(m["C"], (3, 5, 4, 6, 1, 0), "C")
    assert_times(m["X"], (5, 5, 7, 7, 2, 2), "X")
    assert_times(m["D"], (5, 6, 6, 7, 1, 1), "D")
    assert_times(m["E"], (7, 9, 7, 9, 0, 0), "E")

    assert res["critical_path"] == ["A", "B", "E"], f"Critical path should be A-B-E, got {res['critical_path']}"
    assert res["project_duration"] == 9


def test_rejected_inputs():
    try:
        analyze_schedule([
            {"id": "S", "duration": 1, "predecessors": []},
            {"id": "A", "duration": 1, "predecessors": ["S", "C"]},
            {"id": "B", "duration": 1, "predecessors": ["A"]},
            {"id": "C", "duration": 1, "predecessors": ["B"]},
            {"id": "E", "duration": 1, "predecessors": ["C"]},
        ])
    except CycleError as e:
        assert e.cycle == ("A", "B", "C", "A"), f"Unexpected cycle {e.cycle}"
    else:
        raise AssertionError("Cycle was not detected")

    try:
        analyze_schedule([
            {"id": "A", "duration": 3, "predecessors": []},
            {"id": "X", "predecessors": ["A"], "isDummy": True},
            {"id": "B", "duration": 2, "predecessors": ["X"]},
        ])
    except AnomalyError as e:
        assert [d.kind for d in e.diagnostics] == ["dummy_on_critical_path"]
    else:
        raise AssertionError("Dummy task on the critical path was accepted")


if __name__ == "__main__":
    test_linear_chain()
    test_two_branches_with_dummy_link()
    test_rejected_inputs()
    print("✅ CPM self-test passed: linear chain, dummy link, rejected inputs")
