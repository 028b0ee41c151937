"""Service banner, liveness and debug status endpoints."""

from datetime import UTC, datetime

from fastapi import APIRouter, Request

from callrelay.config import get_settings

router = APIRouter()


@router.get("/")
async def banner() -> dict:
    settings = get_settings()
    return {
        "status": "ok",
        "service": settings.app_name,
        "version": settings.app_version,
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@router.get("/status")
async def status(request: Request) -> dict:
    """Counts and ids of pending codes and registrations."""
    doc = await request.app.state.store.load()
    return {
        "authCodesCount": len(doc.auth_codes),
        "registrationsCount": len(doc.registrations),
        "authCodes": list(doc.auth_codes),
        "registrations": list(doc.registrations),
    }
