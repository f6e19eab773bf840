"""
Shared schema building blocks.

Request bodies travel in camelCase (``posterUrl``, ``bookingDate``) while the
Python side uses snake_case attributes; every schema derives from
``CamelModel`` which maps between the two.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from api.src.security import sanitize_payload


class CamelModel(BaseModel):
    """Base schema with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    def to_document(self) -> Dict[str, Any]:
        """Dump JSON-compatible values using wire names, dropping unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SanitizedModel(CamelModel):
    """Schema whose raw input is passed through ``sanitize_payload`` first."""

    @model_validator(mode="before")
    @classmethod
    def sanitize(cls, data: Any) -> Any:
        return sanitize_payload(data)


class Pagination(CamelModel):
    """Pagination block returned next to list payloads."""

    current_page: int
    total_pages: int
    total_items: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int, returned: int) -> "Pagination":
        """
        Compute the pagination block for one page of results.

        Args:
            page: 1-based page number
            limit: Page size
            total: Total matching documents
            returned: Number of documents on this page

        Returns:
            Pagination
        """
        skip = (page - 1) * limit
        return cls(
            current_page=page,
            total_pages=(total + limit - 1) // limit if limit else 0,
            total_items=total,
            has_next=skip + returned < total,
            has_prev=page > 1,
        )


def split_csv(value: Any) -> List[str]:
    """Accept a list or a comma separated string."""
    if value is None:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return [str(item).strip() for item in value]


_UNSET = object()


def success(data: Any = _UNSET, message: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    """Build the success envelope ``{"success": true, "data": ...}``."""
    body: Dict[str, Any] = {"success": True}
    if message is not None:
        body["message"] = message
    if data is not _UNSET:
        body["data"] = data
    body.update(extra)
    return body

