"""HTTP route definitions for the service."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import JSONResponse

from app.schemas import DeviceIdResponse, ReadingIn, ReadingOut, WeatherDataResponse
from services.durations import parse_duration, parse_limit
from services.errors import AllocationExhausted, InvalidDuration, InvalidLimit, StoreFailure
from services.weather import WeatherService, build_default_service

logger = logging.getLogger(__name__)

router = APIRouter()


def get_service() -> WeatherService:
    return build_default_service()


@router.get(
    "/data",
    response_model=WeatherDataResponse,
    response_model_by_alias=True,
    summary="Latest reading plus downsampled history for a time window.",
)
def get_weather_data(
    duration: Optional[str] = Query(None, description="Window in hours: 1, 12, 24, 72, 120 or 168."),
    limit: Optional[str] = Query(None, description="Maximum number of historical points."),
    service: WeatherService = Depends(get_service),
) -> WeatherDataResponse:
    try:
        window = parse_duration(duration)
    except InvalidDuration as exc:
        logger.info("Rejected duration parameter.", extra={"reason": str(exc)})
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid duration",
        ) from exc
    try:
        max_points = parse_limit(limit, default=service.default_limit)
    except InvalidLimit as exc:
        logger.info("Rejected limit parameter.", extra={"reason": str(exc)})
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid limit value",
        ) from exc

    try:
        snapshot = service.snapshot(window, max_points)
    except StoreFailure as exc:
        logger.exception("Failed to fetch weather data.")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch weather data",
        ) from exc

    return WeatherDataResponse(
        latest=ReadingOut.from_record(snapshot.latest) if snapshot.latest else None,
        historical=[ReadingOut.from_record(reading) for reading in snapshot.historical],
    )


@router.post(
    "/data",
    status_code=status.HTTP_201_CREATED,
    summary="Store a reading, allocating a device id when none is supplied.",
    responses={
        status.HTTP_201_CREATED: {
            "model": DeviceIdResponse,
            "description": "Reading stored. The body carries the device id only when it was assigned.",
        }
    },
)
def submit_weather_data(
    payload: ReadingIn,
    service: WeatherService = Depends(get_service),
) -> Response:
    try:
        result = service.ingest(payload.to_new_reading())
    except AllocationExhausted as exc:
        logger.error("Device id allocation exhausted.", extra={"reason": str(exc)})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate Device ID",
        ) from exc
    except StoreFailure as exc:
        logger.exception("Failed to insert weather data.")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to insert weather data",
        ) from exc

    if result.assigned:
        body = DeviceIdResponse(id=result.device_id)
        return JSONResponse(status_code=status.HTTP_201_CREATED, content=body.model_dump())
    return Response(status_code=status.HTTP_201_CREATED)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
