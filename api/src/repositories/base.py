"""
Repository helpers shared by every collection.

Repositories are thin async wrappers around pymongo collections. They are
the boundary at which driver failures become typed application errors:

- a string that is not a valid ObjectId raises ``MalformedIdentifierError``
- a unique index violation raises ``DuplicateValueError(field)``
"""

from contextlib import contextmanager
from datetime import date, datetime, time, timezone
from typing import Any, Dict, Iterator, Optional

import structlog
from bson import ObjectId
from bson.errors import InvalidId
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import DuplicateKeyError

from api.src.errors import DuplicateValueError, MalformedIdentifierError

logger = structlog.get_logger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_object_id(value: Any) -> ObjectId:
    """
    Parse a document id.

    Args:
        value: ObjectId or its 24-character hex form

    Returns:
        ObjectId

    Raises:
        MalformedIdentifierError: If the value is not a valid id
    """
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise MalformedIdentifierError(value)


def is_object_id(value: Any) -> bool:
    return isinstance(value, ObjectId) or (isinstance(value, str) and ObjectId.is_valid(value))


def date_to_datetime(value: date) -> datetime:
    """Midnight UTC of a calendar date (BSON has no date-only type)."""
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def serialize_document(value: Any) -> Any:
    """
    Convert a MongoDB document into JSON-safe values.

    ObjectIds become hex strings and datetimes ISO-8601 strings; nested
    dicts and lists are converted recursively.
    """
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: serialize_document(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_document(item) for item in value]
    return value


def duplicate_field(exc: DuplicateKeyError) -> str:
    """Name of the field whose unique index rejected a write."""
    details: Dict[str, Any] = exc.details or {}
    for key in ("keyValue", "keyPattern"):
        fields = details.get(key)
        if fields:
            return next(iter(fields))
    return "value"


class BaseRepository:
    """Common plumbing for a single collection."""

    collection_name: str = ""

    def __init__(self, collection: AsyncCollection):
        self.collection = collection

    @contextmanager
    def translate_errors(self) -> Iterator[None]:
        """Re-raise unique index violations as DuplicateValueError."""
        try:
            yield
        except DuplicateKeyError as e:
            field = duplicate_field(e)
            logger.warning("duplicate_key", collection=self.collection_name, field=field)
            raise DuplicateValueError(field) from e

    async def find_by_id(self, document_id: Any) -> Optional[Dict[str, Any]]:
        """
        Fetch one document by id.

        Raises:
            MalformedIdentifierError: If the id is not a valid ObjectId
        """
        return await self.collection.find_one({"_id": to_object_id(document_id)})
