"""Manual trigger for the expiry sweep."""

from fastapi import APIRouter, HTTPException

from app.config import settings
from app.schemas.sweep import SweepMetrics
from app.services import sweep_service

router = APIRouter()


@router.post("", response_model=SweepMetrics)
async def run_cleanup():
    if not settings.cleanup_endpoint_enabled:
        raise HTTPException(status_code=404, detail="Not found")
    return await sweep_service.run_sweep()
