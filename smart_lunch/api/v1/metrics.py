from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from smart_lunch.api.deps import get_metrics
from smart_lunch.services.metrics import MetricsLogger

router = APIRouter(tags=["metrics"])


class UILatency(BaseModel):
    name: str = Field(..., description="Metric name, e.g. 'recipe_render' or 'cooking_mode_open'")
    duration_ms: float = Field(..., ge=0)
    extra: Optional[dict] = None
    user_id: Optional[str] = None
    corr_id: Optional[str] = None


@router.post("/api/v1/metrics/ui")
def log_ui_latency(payload: UILatency, metrics: MetricsLogger = Depends(get_metrics)):
    metrics.log_latency(
        payload.name,
        payload.duration_ms,
        origin="frontend",
        extra=payload.extra,
        user_id=payload.user_id,
        corr_id=payload.corr_id,
    )
    return {"ok": True}
