import math
from pathlib import Path
from typing import Any, Optional

from fastapi import APIRouter, FastAPI, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel

try:
    from dotenv import load_dotenv
except ImportError:  # pragma: no cover - optional dependency
    load_dotenv = None

if load_dotenv is not None:
    load_dotenv(dotenv_path=Path(__file__).resolve().parents[1] / ".env", override=False)

from .db.snapshot import get_repository
from .models.analysis import RealtorRankingsResponse
from .models.property import PropertyListResponse
from .services.analysis_service import PropertyNotFoundError, _get_default_service, analyze_property
from .services.comparables import parse_radius_mode

app = FastAPI(title="Deal Finder analytics")
router = APIRouter(prefix="/api")


def _sanitize(value: Any) -> Any:
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {k: _sanitize(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_sanitize(item) for item in value]
    return value


def _encode(payload: Any) -> Any:
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(by_alias=True)
    return jsonable_encoder(_sanitize(payload))


def _radius(radius: Optional[str]) -> str:
    try:
        return parse_radius_mode(radius)
    except ValueError as exc:
        raise HTTPException(400, detail=str(exc)) from exc


@router.get("/health")
def health():
    return {"status": "ok", "properties": len(get_repository())}


@router.get("/properties")
def list_props(ward: Optional[str] = Query(None), limit: int = Query(200, ge=1, le=5000)):
    rows = get_repository().list_properties(ward=ward, limit=limit)
    return _encode(PropertyListResponse(items=rows, total=len(rows)))


@router.get("/properties/{property_id}")
def get_prop(property_id: str, radius: str = Query("auto"), same_ward_only: bool = Query(True)):
    mode = _radius(radius)
    try:
        analysis = analyze_property(property_id, radius_mode=mode, same_ward_only=same_ward_only)
    except PropertyNotFoundError as exc:
        raise HTTPException(404, detail=str(exc)) from exc
    return _encode(analysis)


@router.get("/properties/{property_id}/comparables")
def get_comparables(property_id: str, radius: str = Query("auto"), same_ward_only: bool = Query(True)):
    mode = _radius(radius)
    try:
        result = _get_default_service().comparables(property_id, radius_mode=mode, same_ward_only=same_ward_only)
    except PropertyNotFoundError as exc:
        raise HTTPException(404, detail=str(exc)) from exc
    return _encode(result)


@router.get("/properties/{property_id}/market-stats")
def get_market_stats(property_id: str, radius: str = Query("auto"), same_ward_only: bool = Query(True)):
    mode = _radius(radius)
    try:
        stats = _get_default_service().market_stats(property_id, radius_mode=mode, same_ward_only=same_ward_only)
    except PropertyNotFoundError as exc:
        raise HTTPException(404, detail=str(exc)) from exc
    return {"market_stats": _encode(stats) if stats is not None else None}


@router.get("/scores")
def list_scores():
    scored = _get_default_service().scores()
    return _encode({"items": [item.model_dump(by_alias=True) for item in scored], "total": len(scored)})


@router.get("/realtors/rankings")
def realtor_rankings():
    rankings = _get_default_service().realtor_rankings()
    return _encode(RealtorRankingsResponse(rankings=rankings, total=len(rankings)))


app.include_router(router)
