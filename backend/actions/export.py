"""
Action export formats.

CSV layout (header row always present):

  ID,Type,Priority,SKU,Location,Description,Instructions,Status,Created,Estimated Impact

Description and Instructions are always wrapped in double quotes with
embedded quotes doubled. Every other field is written raw.
"""

import csv
import io
from datetime import datetime
from typing import Any, Iterable

CSV_HEADERS = (
    "ID",
    "Type",
    "Priority",
    "SKU",
    "Location",
    "Description",
    "Instructions",
    "Status",
    "Created",
    "Estimated Impact",
)

EXPORT_FILENAME = "action_recommendations.csv"


def quote_field(value: str | None) -> str:
    return '"' + (value or "").replace('"', '""') + '"'


def _iso(value: datetime | None) -> str:
    return value.isoformat() if value else ""


def _raw(value: Any) -> str:
    if value is None:
        return ""
    return str(getattr(value, "value", value))


def action_to_row(action: Any) -> list[str]:
    return [
        _raw(action.action_id),
        _raw(action.action_type),
        _raw(action.priority),
        _raw(action.sku),
        _raw(action.location_code),
        quote_field(action.description),
        quote_field(action.instructions),
        _raw(action.status),
        _iso(action.created_at),
        _raw(action.estimated_impact or 0),
    ]


def actions_to_csv(actions: Iterable[Any]) -> str:
    lines = [",".join(CSV_HEADERS)]
    lines.extend(",".join(action_to_row(a)) for a in actions)
    return "\n".join(lines)


def parse_csv(content: str) -> list[list[str]]:
    """
    Read an export back into rows, header first.

    Quoted fields may span lines; doubled quotes are collapsed.
    """
    return [row for row in csv.reader(io.StringIO(content, newline="")) if row]


def action_to_dict(action: Any) -> dict[str, Any]:
    return {
        "action_id": _raw(action.action_id),
        "action_type": _raw(action.action_type),
        "priority": action.priority,
        "description": action.description,
        "instructions": action.instructions,
        "discrepancy_id": _raw(action.discrepancy_id) or None,
        "sku": action.sku,
        "location_code": action.location_code,
        "estimated_impact": float(action.estimated_impact or 0),
        "status": _raw(action.status),
        "notes": action.notes,
        "completed_by": action.completed_by,
        "created_at": _iso(action.created_at) or None,
        "completed_at": _iso(action.completed_at) or None,
        "exported_at": _iso(action.exported_at) or None,
    }


def actions_to_json(actions: Iterable[Any]) -> list[dict[str, Any]]:
    return [action_to_dict(a) for a in actions]
