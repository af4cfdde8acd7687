"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...config import settings

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


def _get_oracle_health_check(provider: str):
    """Lazy import so a broken provider module does not break startup."""
    if provider == "google":
        from ...services.routing.google_client import check_health
    else:
        from ...services.routing.osrm_client import check_health
    return check_health


@router.get("/health/oracle", status_code=status.HTTP_200_OK)
def health_oracle() -> dict:
    """Check the configured travel matrix provider."""
    provider = settings.matrix_provider
    try:
        healthy = _get_oracle_health_check(provider)()
        return {"service": provider, "healthy": healthy}
    except Exception as e:
        return {"service": provider, "healthy": False, "error": str(e)}
