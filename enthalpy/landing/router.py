"""Pilot access form endpoint used by the landing page."""

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from enthalpy.pilot.errors import PilotAccessError
from enthalpy.pilot.service import PilotAccessService

logger = structlog.get_logger()

router = APIRouter(tags=["pilot-access"])

# First path is canonical; the others are what earlier site builds posted to.
PILOT_ACCESS_PATHS = ("/api/pilot-access", "/api/pilote-access", "/pilot-access")


def get_pilot_service(request: Request) -> PilotAccessService:
    """FastAPI dependency for the per-process PilotAccessService."""
    return request.app.state.pilot_service


async def submit_pilot_access(
    request: Request,
    service: PilotAccessService = Depends(get_pilot_service),
) -> JSONResponse:
    """Relay a pilot access request to the operator by email.

    Always answers with JSON: {"ok": true} on success (including dropped
    spam), otherwise {"error": ...} with a status matching the error class.
    """
    try:
        body = await request.body()
        await service.submit(body)
    except PilotAccessError as e:
        log = logger.warning if e.status_code < 500 else logger.error
        log(
            "pilot_request_rejected",
            path=request.url.path,
            status_code=e.status_code,
            reason=e.reason,
            details=e.details,
        )
        return JSONResponse(e.to_payload(), status_code=e.status_code)
    except Exception:
        logger.exception("pilot_request_unexpected_error", path=request.url.path)
        return JSONResponse({"error": "Unexpected server error"}, status_code=500)

    return JSONResponse({"ok": True})


for _path in PILOT_ACCESS_PATHS:
    router.add_api_route(
        _path,
        submit_pilot_access,
        methods=["POST"],
        include_in_schema=_path == PILOT_ACCESS_PATHS[0],
    )
