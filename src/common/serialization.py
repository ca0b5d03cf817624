"""Serialization utilities."""

from dataclasses import asdict
from datetime import datetime


def serialize_dataclass(obj) -> dict:
    """Serialize a flat dataclass to a JSON-ready dict, datetimes as ISO strings."""
    return {
        key: value.isoformat() if isinstance(value, datetime) else value
        for key, value in asdict(obj).items()
    }
