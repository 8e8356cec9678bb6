from services.normalize import normalize_tasks


def test_ids_and_predecessors_are_trimmed():
    raw = [
        {"id": "  A ", "duration": 3, "predecessors": []},
        {"id": "B", "duration": 2, "predecessors": ["  A", "", "A"]},
    ]
    tasks = normalize_tasks(raw)
    assert [t.id for t in tasks] == ["A", "B"]
    assert tasks[1].predecessors == ("A",)


def test_caller_records_are_not_modified():
    raw = [{"id": " A ", "duration": "4", "predecessors": [" B "], "isDummy": False}]
    snapshot = [dict(r) for r in raw]
    normalize_tasks(raw)
    assert raw == snapshot


def test_dummy_duration_is_forced_to_zero():
    tasks = normalize_tasks([
        {"id": "X", "duration": 7, "predecessors": [], "isDummy": True},
        {"id": "Y", "predecessors": [], "is_dummy": True},
    ])
    assert [(t.duration, t.duration_issue, t.is_dummy) for t in tasks] == [
        (0, None, True),
        (0, None, True),
    ]


def test_missing_zero_and_invalid_durations_are_distinct():
    tasks = normalize_tasks([
        {"id": "A", "predecessors": []},
        {"id": "B", "duration": None},
        {"id": "C", "duration": 0},
        {"id": "D", "duration": "x"},
        {"id": "E", "duration": 2.5},
        {"id": "F", "duration": True},
    ])
    got = {t.id: (t.duration, t.duration_issue) for t in tasks}
    assert got == {
        "A": (None, "missing"),
        "B": (None, "missing"),
        "C": (0, None),
        "D": (None, "invalid"),
        "E": (None, "invalid"),
        "F": (None, "invalid"),
    }


def test_numeric_strings_are_read_as_integers():
    tasks = normalize_tasks([
        {"id": "A", "duration": "3"},
        {"id": "B", "duration": "11.0"},
        {"id": "C", "duration": " 05 "},
        {"id": "D", "duration": 6.0},
    ])
    assert [t.duration for t in tasks] == [3, 11, 5, 6]


def test_comma_separated_predecessors_and_dependencies_alias():
    tasks = normalize_tasks([
        {"id": "A", "duration": 1},
        {"id": "B", "duration": 1},
        {"id": "C", "duration": 1, "predecessors": "A, B  ,"},
        {"id": "D", "duration": 1, "dependencies": ["C"]},
    ])
    assert tasks[2].predecessors == ("A", "B")
    assert tasks[3].predecessors == ("C",)


def test_predecessors_map_to_canonical_id_spelling():
    tasks = normalize_tasks([
        {"id": "Design", "duration": 2},
        {"id": "build", "duration": 3, "predecessors": ["design", "DESIGN"]},
    ])
    assert tasks[1].predecessors == ("Design",)


def test_unreadable_records_are_kept_for_the_validator():
    tasks = normalize_tasks([
        "not a task",
        {"id": "A", "duration": 1, "predecessors": 5},
    ])
    assert tasks[0].id == "" and tasks[0].position == 1
    assert tasks[1].predecessors == ()
    assert tasks[1].predecessors_issue == "invalid"


def test_dummy_flag_must_be_a_real_boolean():
    tasks = normalize_tasks([
        {"id": "A", "duration": 3},
        {"id": "B", "duration": 4, "predecessors": ["A"], "isDummy": "false"},
        {"id": "C", "duration": 2, "predecessors": ["B"], "isDummy": None},
        {"id": "D", "duration": 2, "predecessors": ["C"], "is_dummy": 1},
    ])
    got = {t.id: (t.is_dummy, t.is_dummy_issue, t.duration) for t in tasks}
    assert got == {
        "A": (False, None, 3),
        "B": (False, "invalid", 4),
        "C": (False, None, 2),
        "D": (False, "invalid", 2),
    }
