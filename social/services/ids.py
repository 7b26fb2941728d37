"""
ObjectId parsing for ids that arrive in URLs and request bodies.
"""

from bson import ObjectId
from bson.errors import InvalidId

from common.utils.exceptions import NotFoundException


def to_object_id(value: str, message: str = "Not found", code: str = "NOT_FOUND") -> ObjectId:
    """Parse ``value`` as an ObjectId; a malformed id refers to nothing."""
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise NotFoundException(message=message, code=code)
