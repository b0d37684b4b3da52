"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...config import settings

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


def _get_directions_health_check():
    """Lazy import to avoid startup failures."""
    from ...services.routing.directions_client import check_health as directions_health_check
    return directions_health_check


@router.get("/health/directions", status_code=status.HTTP_200_OK)
def health_directions() -> dict:
    """Check OpenRouteService reachability."""
    if not settings.ors_api_key:
        return {"service": "openrouteservice", "configured": False, "healthy": False}
    try:
        directions_health_check = _get_directions_health_check()
        return {"service": "openrouteservice", "configured": True, "healthy": directions_health_check()}
    except Exception as e:
        return {"service": "openrouteservice", "configured": True, "healthy": False, "error": str(e)}


@router.get("/health/database", status_code=status.HTTP_200_OK)
def check_database() -> dict:
    """Check database connection and shipment table status."""
    from ...db.supabase import get_supabase_client

    supabase = get_supabase_client()
    if not supabase:
        return {
            "configured": False,
            "message": "Supabase not configured. Set SHIPTRACE_SUPABASE_URL and SHIPTRACE_SUPABASE_KEY environment variables.",
            "records_count": 0,
        }

    try:
        response = supabase.table(settings.shipments_table).select("id", count="exact").limit(1).execute()
        count = int(response.count or 0)
        return {
            "configured": True,
            "connected": True,
            "table": settings.shipments_table,
            "records_count": count,
            "message": f"Database connected. Found {count} shipment records.",
        }
    except Exception as exc:
        return {
            "configured": True,
            "connected": False,
            "error": str(exc),
            "message": f"Database connection error: {exc}",
        }
