from datetime import datetime
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import HTTPException


def serialize_todo(todo: Optional[dict]) -> Optional[dict]:
    """Convert a MongoDB document to a JSON-serializable dict"""
    if todo is None:
        return None

    return {key: _to_json_value(value) for key, value in todo.items()}


def _to_json_value(value):
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def parse_object_id(todo_id: str) -> ObjectId:
    try:
        return ObjectId(todo_id)
    except (InvalidId, TypeError):
        raise HTTPException(status_code=400, detail=f"Invalid todo id: {todo_id}")
