import logging
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Sequence, Tuple

from services.models import Task

logger = logging.getLogger(__name__)


def _normalize_id(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _normalize_duration(value: Any) -> Tuple[Optional[int], Optional[str]]:
    """
    Read a duration as an integer.
    Absent/None is "missing"; anything that is not a whole number is "invalid".
    Range checks are left to the validator.
    """
    if value is None:
        return None, "missing"
    if isinstance(value, bool):
        return None, "invalid"
    if isinstance(value, int):
        return value, None
    if isinstance(value, float):
        if value.is_integer():
            return int(value), None
        return None, "invalid"
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None, "missing"
        try:
            return int(text), None
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return None, "invalid"
        if number.is_integer():
            return int(number), None
        return None, "invalid"
    return None, "invalid"


def _normalize_dummy_flag(value: Any) -> Tuple[bool, Optional[str]]:
    """Only a real bool marks a dummy; absent or None means a regular task."""
    if value is None:
        return False, None
    if isinstance(value, bool):
        return value, None
    return False, "invalid"


def _split_predecessors(value: Any) -> Tuple[List[str], Optional[str]]:
    if value is None:
        return [], None
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = list(value)
    else:
        return [], "invalid"

    refs: List[str] = []
    for item in items:
        ref = _normalize_id(item)
        if ref and ref not in refs:
            refs.append(ref)
    return refs, None


def normalize_tasks(raw_tasks: Sequence[Any]) -> List[Task]:
    """
    Coerce raw task records into canonical Task values.
      - ids are trimmed
      - dummy tasks always get duration 0
      - predecessor references are trimmed, de-duplicated and mapped to the
        canonical spelling of the task they name (ids compare case-insensitively)
    The caller's records are only read, never modified.
    """
    drafts: List[Dict[str, Any]] = []
    for position, record in enumerate(raw_tasks, start=1):
        if not isinstance(record, Mapping):
            drafts.append({
                "id": "",
                "duration": None,
                "duration_issue": "missing",
                "predecessors": [],
                "predecessors_issue": None,
                "is_dummy": False,
                "is_dummy_issue": None,
                "position": position,
            })
            continue

        is_dummy, is_dummy_issue = _normalize_dummy_flag(
            record.get("isDummy", record.get("is_dummy"))
        )
        if is_dummy:
            duration, duration_issue = 0, None
        else:
            duration, duration_issue = _normalize_duration(record.get("duration"))

        raw_preds = record.get("predecessors")
        if raw_preds is None:
            raw_preds = record.get("dependencies")
        predecessors, predecessors_issue = _split_predecessors(raw_preds)

        drafts.append({
            "id": _normalize_id(record.get("id")),
            "duration": duration,
            "duration_issue": duration_issue,
            "predecessors": predecessors,
            "predecessors_issue": predecessors_issue,
            "is_dummy": is_dummy,
            "is_dummy_issue": is_dummy_issue,
            "position": position,
        })

    canonical: Dict[str, str] = {}
    for draft in drafts:
        if draft["id"]:
            canonical.setdefault(draft["id"].lower(), draft["id"])

    tasks: List[Task] = []
    for draft in drafts:
        resolved: List[str] = []
        for ref in draft["predecessors"]:
            ref = canonical.get(ref.lower(), ref)
            if ref not in resolved:
                resolved.append(ref)
        tasks.append(Task(
            id=draft["id"],
            duration=draft["duration"],
            predecessors=tuple(resolved),
            is_dummy=draft["is_dummy"],
            is_dummy_issue=draft["is_dummy_issue"],
            position=draft["position"],
            duration_issue=draft["duration_issue"],
            predecessors_issue=draft["predecessors_issue"],
        ))

    logger.debug(f"Normalized {len(tasks)} task records")
    return tasks
