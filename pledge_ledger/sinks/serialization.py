"""JSON encoding for pledge views and notification events.

Money stays exact on the wire: ``Decimal`` values are written as strings,
never as floats.
"""

import json
from dataclasses import fields, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pledge_ledger.models import Event


def serialize_value(value: Any) -> Any:
    """Convert one value into something ``json.dumps`` accepts."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    # datetime before date: datetime is a date subclass
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if is_dataclass(value) and not isinstance(value, type):
        return to_record(value)
    if isinstance(value, dict):
        return {k: serialize_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_value(v) for v in value]
    return value


def to_record(obj: Any) -> dict[str, Any]:
    """Field-by-field dict of a dataclass (or mapping) with serialized values.

    Nested dataclasses, dicts and lists are converted recursively without
    the deep copy ``dataclasses.asdict`` makes.
    """
    if is_dataclass(obj):
        return {f.name: serialize_value(getattr(obj, f.name)) for f in fields(obj)}
    if isinstance(obj, dict):
        return {k: serialize_value(v) for k, v in obj.items()}
    raise TypeError(f"Cannot build a record from {type(obj).__name__}")


def encode_event(event: Event, pretty: bool = False) -> str:
    """Render an event envelope as a JSON document."""
    return json.dumps(
        to_record(event),
        indent=2 if pretty else None,
        ensure_ascii=False,
        default=str,
    )
