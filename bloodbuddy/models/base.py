"""
Storage helpers shared by the document models.
"""
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel


def to_storage(value: Any) -> Any:
    """Convert a python value into the shape stored in MongoDB.

    Datetimes are kept as ISO strings and enums as their values.
    """
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: to_storage(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_storage(v) for v in value]
    return value


def to_document(model: BaseModel) -> dict:
    return to_storage(model.model_dump())
