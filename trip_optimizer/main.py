from __future__ import annotations

import asyncio
from typing import Any, Dict, List

from fastapi import Body, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError as PayloadValidationError

from trip_optimizer import config
from trip_optimizer.errors import ValidationError
from trip_optimizer.llm import narrate_result
from trip_optimizer.orchestrator import apply_alternative, optimize
from trip_optimizer.schemas import ApplyRequest, OptimizeRequest
from trip_optimizer.tools.crowd_gateway import CrowdForecast, StaticCrowdGateway

app = FastAPI(title="Trip Optimizer API")

# Local planners and notebooks call the API directly; operators can narrow
# this via TRIP_OPTIMIZER_ALLOWED_ORIGINS.
allowed_origins = [origin.strip() for origin in config.ALLOWED_ORIGINS.split(",") if origin.strip()]
if not allowed_origins:
    allowed_origins = ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _parse(model, payload: Dict[str, Any]):
    try:
        return model.model_validate(payload)
    except PayloadValidationError as exc:
        raise HTTPException(
            status_code=422, detail=exc.errors(include_url=False, include_context=False)
        ) from exc


async def _optimize_from_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Validate the incoming payload and delegate to the optimizer."""

    request: OptimizeRequest = _parse(OptimizeRequest, payload)

    gateway = None
    if request.forecast is not None:
        # Caller supplied the forecast table; skip the remote gateway.
        forecast = CrowdForecast.from_entries(entry.model_dump() for entry in request.forecast)
        gateway = StaticCrowdGateway(forecast)

    try:
        result = await optimize(request.trip, request.ratings, request.options, gateway=gateway)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    if request.narrate:
        summary = await asyncio.to_thread(narrate_result, result)
        result = result.model_copy(update={"summary": summary})
    return result.model_dump(mode="json")


@app.post("/api/optimize")
async def api_optimize(payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    """Produce ranked alternative park assignments for a trip."""
    return await _optimize_from_payload(payload)


@app.post("/api/apply")
async def api_apply(payload: Dict[str, Any] = Body(...)) -> List[Dict[str, Any]]:
    """Apply a chosen alternative to a day list; only destinations change."""
    request: ApplyRequest = _parse(ApplyRequest, payload)
    days = apply_alternative(request.days, request.alternative)
    # Echo back only what the caller sent, plus any changed destination.
    return [day.model_dump(mode="json", exclude_unset=True) for day in days]
