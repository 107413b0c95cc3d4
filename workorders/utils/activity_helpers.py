# workorders/utils/activity_helpers.py
from enum import Enum
from typing import Any, Dict, Iterable, List


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    if isinstance(value, list):
        return [_plain(v) for v in value]
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


def diff_fields(before: Dict[str, Any], after: Dict[str, Any], fields: Iterable[str]) -> List[Dict[str, Any]]:
    """
    Field-level changes between two snapshots, as activity-log ``changes``.
    Values are converted to JSON-friendly primitives.
    """
    changes = []
    for field in fields:
        old_val, new_val = _plain(before.get(field)), _plain(after.get(field))
        if old_val != new_val:
            changes.append({"field": field, "old_value": old_val, "new_value": new_val})
    return changes


def summarize_changes(changes: List[Dict[str, Any]]) -> str:
    return ", ".join(f"{c['field']}: {c['old_value']} → {c['new_value']}" for c in changes)
