"""
FormBridge Backend — Pydantic Request/Response Schemas
=======================================================

What:  Pydantic models defining the JSON contract of the API.
How:   FastAPI serializes the response models (by alias, so the wire format is
       camelCase: totalCount, currentPage, ...) and builds the OpenAPI docs.

Submission documents themselves are schema-less: the caller may send any
extra fields and they are stored as-is, so submissions are exposed as plain
dicts rather than a fixed model.
"""

import re
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10

# Leading sign and digits, the way a lenient integer parser reads "12abc" as 12
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_int_param(raw: Any, default: int) -> int:
    """
    Parse a query parameter leniently.

    "3" → 3, "3abc" → 3, "-2" → -2. Missing, empty, non-numeric and zero
    values fall back to `default`.
    """
    if raw is None:
        return default
    if isinstance(raw, bool):
        return default
    if isinstance(raw, int):
        return raw or default
    match = _LEADING_INT.match(str(raw))
    if not match:
        return default
    return int(match.group(1)) or default


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ══════════════════════════════════════════════════════════════════════════
# Query Parameter Models
# ══════════════════════════════════════════════════════════════════════════


class PaginationParams(BaseModel):
    """
    Page/limit query parameters for GET /form-submissions.

    Non-numeric input never raises here; it falls back to the defaults.
    Range checks (negative values) are business rules and live in the service.
    """

    page: int = Field(default=DEFAULT_PAGE, description="1-based page number")
    limit: int = Field(default=DEFAULT_LIMIT, description="Items per page")

    @field_validator("page", mode="before")
    @classmethod
    def coerce_page(cls, v: Any) -> int:
        return parse_int_param(v, DEFAULT_PAGE)

    @field_validator("limit", mode="before")
    @classmethod
    def coerce_limit(cls, v: Any) -> int:
        return parse_int_param(v, DEFAULT_LIMIT)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class SubmitResponse(BaseModel):
    """Returned by POST /submit-form after the document was written."""

    success: bool = Field(default=True)
    id: str = Field(description="Firestore document id of the new submission")
    message: str = Field(default="Form submitted successfully")


class PaginationInfo(_CamelModel):
    """
    Pagination metadata for the submissions list.

    total_count is the size of the whole collection and does not depend on
    the requested page.
    """

    total_count: int = Field(description="Number of documents in the collection")
    current_page: int = Field(description="Page that was requested")
    total_pages: int = Field(description="ceil(total_count / limit)")
    limit: int = Field(description="Page size that was applied")


class SubmissionListResponse(BaseModel):
    """Returned by GET /form-submissions."""

    success: bool = Field(default=True)
    submissions: List[Dict[str, Any]] = Field(
        default_factory=list,
        description="Stored documents, newest first, each with its `id`",
    )
    pagination: PaginationInfo


class ErrorResponse(BaseModel):
    """
    Error envelope shared by every failing endpoint.

    Example:
        {"success": false, "error": "Invalid email format"}
    """

    success: bool = Field(default=False)
    error: str = Field(description="Human-readable error description")


class HealthResponse(BaseModel):
    """Returned by GET /health. Never an error."""

    status: str = Field(default="OK")
    firebase: str = Field(description="'Initialized' or 'Not initialized'")
