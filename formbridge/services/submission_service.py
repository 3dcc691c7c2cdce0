"""
FormBridge Backend — Submission Service (Business Logic)
=========================================================

What:  Form intake (validate → enrich → write) and the paginated reader.
How:   Receives the Firestore client explicitly on every call, so the service
       itself holds no connection state.
Who:   Called by the submission route handlers.

Intake Flow (POST /submit-form):
    ┌──────────┐    ┌─────────────┐    ┌──────────────┐    ┌──────────┐
    │  Payload │───▶│  Validate   │───▶│   Enrich     │───▶│  add()   │
    │  (Route) │    │ (fail-fast) │    │ ts / ip / ua │    │ Firestore│
    └──────────┘    └─────────────┘    └──────────────┘    └──────────┘

Reader Flow (GET /form-submissions):
    count() over the whole collection, then
    order_by(submittedAt DESC).offset((page-1)*limit).limit(limit)

Duplicate submissions:
    There is no idempotency key. Two identical payloads produce two documents
    with two distinct ids.
"""

import logging
import math
import re
from typing import Any, Dict, Mapping, Optional

from fastapi import Request
from google.cloud.firestore import SERVER_TIMESTAMP, AsyncClient, Query

from formbridge.exceptions import (
    InvalidFormatError,
    MissingFieldError,
    StoreError,
    ValidationError,
)
from formbridge.schemas.submission import (
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    PaginationInfo,
    SubmissionListResponse,
    SubmitResponse,
)

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("username", "email", "password")

# local@domain.tld: no whitespace, exactly one "@", at least one dot after it
EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")

SUBMITTED_AT = "submittedAt"
IP_ADDRESS = "ipAddress"
USER_AGENT = "userAgent"


def validate_submission(payload: Mapping[str, Any]) -> None:
    """
    Apply the intake rules in order, stopping at the first failure.

    1. username, email and password must all be present and truthy
    2. email must have the local@domain.tld shape

    Raises:
        MissingFieldError: Rule 1 failed
        InvalidFormatError: Rule 2 failed
    """
    missing = [field for field in REQUIRED_FIELDS if not payload.get(field)]
    if missing:
        raise MissingFieldError(context={"missing": missing})

    if not EMAIL_PATTERN.fullmatch(str(payload["email"])):
        raise InvalidFormatError()


def build_document(
    payload: Mapping[str, Any],
    caller_ip: Optional[str],
    caller_agent: Optional[str],
) -> Dict[str, Any]:
    """
    Shallow copy of the payload plus the three server-assigned fields.

    Extra caller fields are kept as-is. On a key clash the server-assigned
    value wins.
    """
    document = dict(payload)
    document[SUBMITTED_AT] = SERVER_TIMESTAMP
    document[IP_ADDRESS] = caller_ip or ""
    document[USER_AGENT] = caller_agent or ""
    return document


class SubmissionService:
    """
    Business logic for form submissions.

    Responsibilities:
        - submit(): validate and persist one submission
        - list_submissions(): offset-paginated listing, newest first

    Store failures are wrapped in StoreError with the store's message
    unchanged. Validation errors are raised before any store call.
    """

    def __init__(self, collection_name: str = "form_submissions"):
        self.collection_name = collection_name

    async def submit(
        self,
        db: AsyncClient,
        payload: Mapping[str, Any],
        caller_ip: Optional[str] = None,
        caller_agent: Optional[str] = None,
    ) -> SubmitResponse:
        """
        Validate and store one form submission.

        Args:
            db: Firestore client (from get_firestore)
            payload: Decoded JSON body
            caller_ip: Network address of the caller
            caller_agent: User-Agent header of the caller

        Returns:
            SubmitResponse with the id assigned by Firestore

        Raises:
            MissingFieldError / InvalidFormatError: Payload rejected, nothing written
            StoreError: The write failed
        """
        # Values are not logged: the payload carries a password
        logger.info("Received form data with fields: %s", sorted(payload.keys()))

        validate_submission(payload)
        document = build_document(payload, caller_ip, caller_agent)

        try:
            _, doc_ref = await db.collection(self.collection_name).add(document)
        except Exception as e:
            logger.error("Error submitting form: %s", e, exc_info=True)
            raise StoreError(message=str(e), context={"error_type": type(e).__name__}) from e

        logger.info("Form submitted with ID: %s", doc_ref.id)
        return SubmitResponse(id=doc_ref.id)

    async def list_submissions(
        self,
        db: AsyncClient,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_LIMIT,
    ) -> SubmissionListResponse:
        """
        Return one page of submissions ordered by submittedAt, newest first.

        Args:
            db: Firestore client
            page: 1-based page number
            limit: Page size

        Returns:
            SubmissionListResponse; totalCount always covers the whole collection,
            so a page past the end yields no items but the same totalCount.

        Raises:
            ValidationError: page or limit is not positive
            StoreError: The count or the query failed
        """
        if page < 1:
            raise ValidationError(
                message="Query parameter 'page' must be a positive integer",
                field="page",
            )
        if limit < 1:
            raise ValidationError(
                message="Query parameter 'limit' must be a positive integer",
                field="limit",
            )

        offset = (page - 1) * limit
        collection = db.collection(self.collection_name)

        try:
            count_result = await collection.count().get()
            total_count = int(count_result[0][0].value)

            query = (
                collection.order_by(SUBMITTED_AT, direction=Query.DESCENDING)
                .offset(offset)
                .limit(limit)
            )
            snapshots = await query.get()
        except Exception as e:
            logger.error("Error fetching form submissions: %s", e, exc_info=True)
            raise StoreError(message=str(e), context={"error_type": type(e).__name__}) from e

        submissions = [{"id": snap.id, **(snap.to_dict() or {})} for snap in snapshots]

        logger.debug(
            "Listed %d submissions (page=%d, limit=%d, total=%d)",
            len(submissions),
            page,
            limit,
            total_count,
        )

        return SubmissionListResponse(
            submissions=submissions,
            pagination=PaginationInfo(
                total_count=total_count,
                current_page=page,
                total_pages=math.ceil(total_count / limit),
                limit=limit,
            ),
        )


def get_submission_service(request: Request) -> SubmissionService:
    """FastAPI dependency returning the service owned by the application."""
    return request.app.state.submission_service
