"""
HTTP gateway for the mobile client.

Routes follow the client's API service paths. Every response uses the
``{"success": ..., "data": ...}`` envelope with camelCase keys; engine
errors become ``{"success": false, "error": <code>, "message": ...}``.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import Body, Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from evcharge.api.auth import TokenRegistry, get_current_user
from evcharge.config import settings
from evcharge.errors import ReservationError
from evcharge.logging_context import get_request_logger, new_request_id, set_request_id
from evcharge.reservations.manager import Clock, ReservationManager
from evcharge.schemas.reservation_schema import (
    ReservationRequest,
    ReservationStatus,
    SessionMetrics,
)
from evcharge.schemas.station_schema import Coordinate
from evcharge.tools.locator import StationLocator
from evcharge.tools.stations import StationCatalog
from evcharge.tools.storage import ReservationStore
from evcharge.utils import parse_instant

logger = get_request_logger(__name__)


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, list):
        return [_dump(item) for item in value]
    return value


def _ok(data: Any, message: Optional[str] = None) -> dict[str, Any]:
    payload: dict[str, Any] = {"success": True, "data": _dump(data)}
    if message:
        payload["message"] = message
    return payload


def _manager(request: Request) -> ReservationManager:
    return request.app.state.manager


def create_app(
    catalog: Optional[StationCatalog] = None,
    store: Optional[ReservationStore] = None,
    tokens: Optional[TokenRegistry] = None,
    clock: Optional[Clock] = None,
) -> FastAPI:
    """Build the gateway around a catalog, store, and token registry."""
    if catalog is None:
        catalog = StationCatalog()
    if store is None:
        store = ReservationStore()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("%s serving %d stations", settings.service_name, len(catalog))
        yield
        store.close()

    app = FastAPI(
        title="EV Charge Reservations",
        description="Station discovery and connector reservation engine.",
        lifespan=lifespan,
    )
    app.state.store = store
    app.state.tokens = tokens if tokens is not None else TokenRegistry()
    app.state.locator = StationLocator()
    app.state.manager = ReservationManager(catalog, store, clock=clock)

    # ------------------------------------------------------------------ #
    # Middleware and error mapping
    # ------------------------------------------------------------------ #

    @app.middleware("http")
    async def attach_request_id(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or new_request_id()
        set_request_id(request_id)
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @app.exception_handler(ReservationError)
    async def handle_reservation_error(request: Request, exc: ReservationError) -> JSONResponse:
        logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
        return JSONResponse(
            status_code=exc.http_status, content={"success": False, **exc.to_dict()}
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [
            {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "success": False,
                "error": "invalid_request",
                "message": "Request validation failed.",
                "details": {"errors": errors},
            },
        )

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {"status": "ok", "service": settings.service_name}

    prefix = settings.api.prefix

    # ------------------------------------------------------------------ #
    # Stations (public)
    # ------------------------------------------------------------------ #

    @app.get(f"{prefix}/stations")
    def list_stations(request: Request) -> dict[str, Any]:
        return _ok(_manager(request).catalog.list_stations())

    @app.get(f"{prefix}/stations/nearby")
    def nearby_stations(
        request: Request,
        lat: float = Query(ge=-90.0, le=90.0),
        lng: float = Query(ge=-180.0, le=180.0),
        radius: Optional[float] = Query(default=None, ge=0),
        limit: Optional[int] = Query(default=None, ge=1),
        rank: bool = Query(default=False),
    ) -> dict[str, Any]:
        origin = Coordinate(latitude=lat, longitude=lng)
        stations = _manager(request).catalog.nearby(origin, radius_km=radius, limit=limit)
        if rank:
            return _ok(request.app.state.locator.rank(origin, stations))
        return _ok(stations)

    @app.get(f"{prefix}/stations/{{station_id}}")
    def get_station(request: Request, station_id: str) -> dict[str, Any]:
        return _ok(_manager(request).catalog.get(station_id))

    # ------------------------------------------------------------------ #
    # Reservations (authenticated)
    # ------------------------------------------------------------------ #

    @app.get(f"{prefix}/reservations/availability")
    def check_availability(
        request: Request,
        station_id: str = Query(alias="stationId"),
        connector_type: str = Query(alias="connectorType"),
        start_time: str = Query(alias="startTime"),
        end_time: str = Query(alias="endTime"),
        user_id: str = Depends(get_current_user),
    ) -> dict[str, Any]:
        result = _manager(request).check_availability(
            station_id,
            connector_type,
            parse_instant(start_time, "startTime"),
            parse_instant(end_time, "endTime"),
        )
        return _ok(result)

    @app.get(f"{prefix}/reservations/active")
    def active_reservations(
        request: Request, user_id: str = Depends(get_current_user)
    ) -> dict[str, Any]:
        return _ok(_manager(request).list_active(user_id))

    @app.get(f"{prefix}/reservations/analytics")
    def reservation_analytics(
        request: Request,
        period: Optional[int] = Query(default=None, ge=1),
        user_id: str = Depends(get_current_user),
    ) -> dict[str, Any]:
        return _ok(_manager(request).analytics(user_id, period_days=period))

    @app.get(f"{prefix}/reservations/station/{{station_id}}")
    def station_reservations(
        request: Request,
        station_id: str,
        start_time: Optional[str] = Query(default=None, alias="startTime"),
        end_time: Optional[str] = Query(default=None, alias="endTime"),
        user_id: str = Depends(get_current_user),
    ) -> dict[str, Any]:
        rows = _manager(request).station_schedule(
            station_id,
            parse_instant(start_time, "startTime") if start_time else None,
            parse_instant(end_time, "endTime") if end_time else None,
        )
        # Other users' details stay private; only the occupied windows are shared
        slots = [
            {
                "reservationId": r.reservation_id,
                "connectorType": r.connector_type,
                "startTime": r.start_time.isoformat(),
                "endTime": r.end_time.isoformat(),
                "status": r.status.value,
                "mine": r.user_id == user_id,
            }
            for r in rows
        ]
        return _ok(slots)

    @app.get(f"{prefix}/reservations")
    def list_reservations(
        request: Request,
        status_filter: Optional[ReservationStatus] = Query(default=None, alias="status"),
        limit: Optional[int] = Query(default=None, ge=1),
        user_id: str = Depends(get_current_user),
    ) -> dict[str, Any]:
        return _ok(_manager(request).list_for_user(user_id, status=status_filter, limit=limit))

    @app.post(f"{prefix}/reservations", status_code=status.HTTP_201_CREATED)
    def create_reservation(
        request: Request,
        body: ReservationRequest,
        user_id: str = Depends(get_current_user),
    ) -> dict[str, Any]:
        reservation = _manager(request).create(
            user_id,
            body.station_id,
            body.connector_type,
            body.start_time,
            body.end_time,
            vehicle_info=body.vehicle_info,
            notes=body.notes,
        )
        return _ok(reservation, message="Reservation created.")

    @app.get(f"{prefix}/reservations/{{reservation_id}}")
    def get_reservation(
        request: Request, reservation_id: str, user_id: str = Depends(get_current_user)
    ) -> dict[str, Any]:
        return _ok(_manager(request).get(user_id, reservation_id))

    @app.patch(f"{prefix}/reservations/{{reservation_id}}/confirm")
    def confirm_reservation(
        request: Request, reservation_id: str, user_id: str = Depends(get_current_user)
    ) -> dict[str, Any]:
        return _ok(_manager(request).confirm(user_id, reservation_id))

    @app.patch(f"{prefix}/reservations/{{reservation_id}}/start")
    def start_session(
        request: Request, reservation_id: str, user_id: str = Depends(get_current_user)
    ) -> dict[str, Any]:
        return _ok(_manager(request).start(user_id, reservation_id))

    @app.patch(f"{prefix}/reservations/{{reservation_id}}/complete")
    def complete_session(
        request: Request,
        reservation_id: str,
        session: Optional[SessionMetrics] = Body(default=None),
        user_id: str = Depends(get_current_user),
    ) -> dict[str, Any]:
        return _ok(_manager(request).complete(user_id, reservation_id, session))

    @app.delete(f"{prefix}/reservations/{{reservation_id}}")
    def cancel_reservation(
        request: Request, reservation_id: str, user_id: str = Depends(get_current_user)
    ) -> dict[str, Any]:
        reservation = _manager(request).cancel(user_id, reservation_id)
        return _ok(
            {"reservationId": reservation.reservation_id, "status": reservation.status.value},
            message=f"Reservation {reservation.reservation_id} has been cancelled.",
        )

    return app
