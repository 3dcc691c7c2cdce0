"""
FormBridge Backend — Submission Route Handlers
================================================

What:  POST /submit-form (intake) and GET /form-submissions (paginated list).
How:   Extracts the body, caller metadata and query parameters, then delegates
       to SubmissionService with the Firestore client from get_firestore().

Dependency order matters for POST /submit-form: the body is read and decoded
before the Firestore dependency runs, so a malformed body is reported as 400
even when Firebase is not initialized.
"""

import json
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request
from google.cloud.firestore import AsyncClient

from formbridge.database import get_firestore
from formbridge.exceptions import PayloadTooLargeError, ValidationError
from formbridge.schemas.submission import (
    ErrorResponse,
    PaginationParams,
    SubmissionListResponse,
    SubmitResponse,
)
from formbridge.services.submission_service import (
    SubmissionService,
    get_submission_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Submissions"])


def _reject_constant(name: str) -> None:
    raise ValueError(f"Invalid JSON constant: {name}")


async def read_json_body(request: Request) -> Dict[str, Any]:
    """
    Read and decode the request body as a JSON object.

    - Body larger than max_body_size → PayloadTooLargeError (413)
    - Empty body → {}
    - Malformed JSON → ValidationError (400)
    - Valid JSON that is not an object → {} (fails later as missing fields)
    """
    max_size = request.app.state.settings.max_body_size
    body = await request.body()
    if len(body) > max_size:
        raise PayloadTooLargeError(max_size=max_size, actual_size=len(body))

    if not body.strip():
        return {}

    # Oversized integers, deep nesting and NaN/Infinity all count as malformed
    try:
        payload = json.loads(body, parse_constant=_reject_constant)
    except (ValueError, RecursionError) as e:
        raise ValidationError(message="Invalid JSON body", context={"reason": str(e)}) from e

    if not isinstance(payload, dict):
        return {}
    return payload


def client_ip(request: Request) -> Optional[str]:
    # request.client is None under some test transports
    return request.client.host if request.client else None


@router.post(
    "/submit-form",
    response_model=SubmitResponse,
    responses={
        200: {"description": "Submission stored", "model": SubmitResponse},
        400: {"description": "Missing field, bad email or bad JSON", "model": ErrorResponse},
        413: {"description": "Body larger than 10MB", "model": ErrorResponse},
        500: {"description": "Firebase not initialized or store failure", "model": ErrorResponse},
    },
    summary="Submit a form",
    description=(
        "Stores a JSON form submission. username, email and password are required; "
        "any other fields are stored as sent. The server adds submittedAt, "
        "ipAddress and userAgent."
    ),
)
async def submit_form(
    request: Request,
    payload: Dict[str, Any] = Depends(read_json_body),
    db: AsyncClient = Depends(get_firestore),
    service: SubmissionService = Depends(get_submission_service),
) -> SubmitResponse:
    return await service.submit(
        db=db,
        payload=payload,
        caller_ip=client_ip(request),
        caller_agent=request.headers.get("user-agent"),
    )


@router.get(
    "/form-submissions",
    response_model=SubmissionListResponse,
    responses={
        200: {"description": "One page of submissions", "model": SubmissionListResponse},
        400: {"description": "Negative page or limit", "model": ErrorResponse},
        500: {"description": "Firebase not initialized or store failure", "model": ErrorResponse},
    },
    summary="List form submissions",
    description=(
        "Returns submissions ordered by submittedAt, newest first, using offset "
        "pagination. Missing or non-numeric page/limit fall back to 1 and 10."
    ),
)
async def list_form_submissions(
    page: Optional[str] = Query(default=None, description="1-based page number (default 1)"),
    limit: Optional[str] = Query(default=None, description="Items per page (default 10)"),
    db: AsyncClient = Depends(get_firestore),
    service: SubmissionService = Depends(get_submission_service),
) -> SubmissionListResponse:
    """
    List submissions.

    Query parameters are taken as raw strings so that "abc" or "" fall back
    to the defaults instead of producing a 422.
    """
    params = PaginationParams(page=page, limit=limit)
    return await service.list_submissions(db=db, page=params.page, limit=params.limit)
