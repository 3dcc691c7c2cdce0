"""
FormBridge Backend — Health Check Route
=========================================

What:  Liveness endpoint reporting whether Firestore has been initialized.
How:   Reads the connector state only; it never triggers initialization and
       never talks to Firestore, so it cannot fail.
Who:   Called by load balancers, Docker health checks and uptime monitors.
"""

from fastapi import APIRouter, Request

from formbridge.schemas.submission import HealthResponse

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="Reports process liveness and whether the Firestore connection is initialized.",
)
async def health_check(request: Request) -> HealthResponse:
    connector = request.app.state.connector
    return HealthResponse(
        status="OK",
        firebase="Initialized" if connector.is_ready else "Not initialized",
    )
