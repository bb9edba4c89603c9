"""
Bridge utilities and validation helpers.
"""

from collections.abc import Mapping
from typing import Any, List

from bson import ObjectId
from bson import json_util
from bson.errors import InvalidId


def is_empty_id(value: Any) -> bool:
    """
    True for ids that cannot identify a document: None, "" and empty containers.
    """
    if value is None:
        return True
    if isinstance(value, ObjectId):
        return False
    if isinstance(value, (str, bytes, list, tuple, dict, set)):
        return len(value) == 0
    return False


def to_object_id(value: Any) -> ObjectId:
    """
    Normalize a plain id to an ObjectId; ObjectIds pass through.

    Raises bson.errors.InvalidId for empty values and for values that are
    not valid ObjectIds; ObjectId(None) would otherwise mint a fresh id.
    """
    if isinstance(value, ObjectId):
        return value
    if is_empty_id(value):
        raise InvalidId(f"{value!r} is not a valid ObjectId")
    return ObjectId(value)


def to_object_ids(values: List[Any]) -> List[ObjectId]:
    return [to_object_id(value) for value in values]


def is_document(value: Any) -> bool:
    return isinstance(value, Mapping)


def is_id_list(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def dumps(value: Any) -> str:
    """JSON rendering for log lines; handles ObjectId and datetime values."""
    return json_util.dumps(value)
