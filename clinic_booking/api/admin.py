from __future__ import annotations

from fastapi import APIRouter, Depends, Header, HTTPException, Query

from clinic_booking.api.errors import to_http_error
from clinic_booking.api.schemas import (
    AdminUpdateBookingRequest,
    BookingResponse,
    BookingSchema,
    BookingsResponse,
    SaveServicesRequest,
    SaveSettingsRequest,
    ServiceSchema,
    ServicesResponse,
    SettingsResponse,
    SettingsSchema,
    StatusResponse,
)
from clinic_booking.application.exceptions import BookingError
from clinic_booking.application.use_cases.booking import BookingUseCase
from clinic_booking.core.config import settings
from clinic_booking.infrastructure.admin_auth import verify_admin_token
from clinic_booking.wiring.dependencies import get_booking_use_case


def require_admin(x_admin_token: str | None = Header(None)) -> None:
    if not verify_admin_token(x_admin_token, settings.ADMIN_TOKEN, settings.ENV):
        raise HTTPException(status_code=401, detail="Not authenticated")


router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin)])


def _require_site_id(site_id: str) -> str:
    site_id = (site_id or "").strip()
    if not site_id:
        raise HTTPException(status_code=400, detail="Missing siteId")
    return site_id


@router.get("/booking/services", response_model=ServicesResponse)
def get_services(
    site_id: str = Query("", alias="siteId"),
    uc: BookingUseCase = Depends(get_booking_use_case),
):
    try:
        services = uc.get_services(_require_site_id(site_id))
    except BookingError as e:
        raise to_http_error(e) from e
    return ServicesResponse(services=[ServiceSchema.from_entity(s) for s in services])


@router.put("/booking/services", response_model=StatusResponse)
def save_services(
    req: SaveServicesRequest,
    uc: BookingUseCase = Depends(get_booking_use_case),
):
    try:
        services = [s.to_entity() for s in req.services]
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    try:
        uc.save_services(_require_site_id(req.site_id), services)
    except BookingError as e:
        raise to_http_error(e) from e
    return StatusResponse()


@router.get("/booking/settings", response_model=SettingsResponse)
def get_settings(
    site_id: str = Query("", alias="siteId"),
    uc: BookingUseCase = Depends(get_booking_use_case),
):
    try:
        booking_settings = uc.get_settings(_require_site_id(site_id))
    except BookingError as e:
        raise to_http_error(e) from e
    if booking_settings is None:
        return SettingsResponse(settings=None)
    return SettingsResponse(settings=SettingsSchema.from_entity(booking_settings))


@router.put("/booking/settings", response_model=StatusResponse)
def save_settings(
    req: SaveSettingsRequest,
    uc: BookingUseCase = Depends(get_booking_use_case),
):
    try:
        booking_settings = req.settings.to_entity()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    try:
        uc.save_settings(_require_site_id(req.site_id), booking_settings)
    except BookingError as e:
        raise to_http_error(e) from e
    return StatusResponse()


@router.get("/bookings", response_model=BookingsResponse)
def list_bookings(
    site_id: str = Query("", alias="siteId"),
    from_date: str = Query("", alias="from"),
    to_date: str = Query("", alias="to"),
    uc: BookingUseCase = Depends(get_booking_use_case),
):
    try:
        bookings = uc.admin_list_bookings(_require_site_id(site_id), from_date, to_date)
    except BookingError as e:
        raise to_http_error(e) from e
    return BookingsResponse(bookings=[BookingSchema.from_entity(b) for b in bookings])


@router.put("/bookings/{booking_id}", response_model=BookingResponse)
def update_booking(
    booking_id: str,
    req: AdminUpdateBookingRequest,
    uc: BookingUseCase = Depends(get_booking_use_case),
):
    try:
        record = req.booking.to_entity()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    try:
        updated = uc.admin_update_booking(
            _require_site_id(req.site_id),
            booking_id,
            record,
            original_date=req.original_date,
        )
    except BookingError as e:
        raise to_http_error(e) from e
    return BookingResponse(booking=BookingSchema.from_entity(updated))
