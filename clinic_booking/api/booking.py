from __future__ import annotations

from fastapi import APIRouter, Depends, Header, Query

from clinic_booking.api.errors import to_http_error
from clinic_booking.api.schemas import (
    BookingResponse,
    BookingSchema,
    BookingsResponse,
    CancelBookingRequest,
    CreateBookingRequest,
    LookupBookingsRequest,
    RescheduleBookingRequest,
    ServiceSchema,
    ServicesResponse,
    SlotsResponse,
)
from clinic_booking.application.exceptions import BookingError
from clinic_booking.application.use_cases.booking import BookingUseCase
from clinic_booking.core.config import settings
from clinic_booking.infrastructure.store.partitioned import check_site_id
from clinic_booking.wiring.dependencies import get_booking_use_case

router = APIRouter(prefix="/booking")


def get_site_id(x_site_id: str | None = Header(None)) -> str:
    """Current site: the X-Site-Id header set by the site router, else the default site."""
    site_id = (x_site_id or "").strip() or settings.DEFAULT_SITE_ID
    try:
        return check_site_id(site_id)
    except BookingError as e:
        raise to_http_error(e) from e


@router.get("/services", response_model=ServicesResponse)
def list_services(
    site_id: str = Depends(get_site_id),
    uc: BookingUseCase = Depends(get_booking_use_case),
):
    try:
        services = uc.list_services(site_id)
    except BookingError as e:
        raise to_http_error(e) from e
    return ServicesResponse(services=[ServiceSchema.from_entity(s) for s in services])


@router.get("/slots", response_model=SlotsResponse)
def get_slots(
    date: str = Query(""),
    service_id: str = Query("", alias="serviceId"),
    site_id: str = Depends(get_site_id),
    uc: BookingUseCase = Depends(get_booking_use_case),
):
    try:
        availability = uc.get_slots(site_id, date, service_id)
    except BookingError as e:
        raise to_http_error(e) from e
    return SlotsResponse(slots=availability.slots, timezone=availability.timezone)


@router.post("/create", response_model=BookingResponse)
def create_booking(
    req: CreateBookingRequest,
    site_id: str = Depends(get_site_id),
    uc: BookingUseCase = Depends(get_booking_use_case),
):
    try:
        booking = uc.create(
            site_id,
            service_id=req.service_id,
            date=req.date,
            time=req.time,
            name=req.name,
            phone=req.phone,
            email=req.email,
            note=req.note,
        )
    except BookingError as e:
        raise to_http_error(e) from e
    return BookingResponse(booking=BookingSchema.from_entity(booking))


@router.post("/reschedule", response_model=BookingResponse)
def reschedule_booking(
    req: RescheduleBookingRequest,
    site_id: str = Depends(get_site_id),
    uc: BookingUseCase = Depends(get_booking_use_case),
):
    try:
        booking = uc.reschedule(
            site_id,
            booking_id=req.booking_id,
            email=req.email,
            date=req.date,
            time=req.time,
        )
    except BookingError as e:
        raise to_http_error(e) from e
    return BookingResponse(booking=BookingSchema.from_entity(booking))


@router.post("/cancel", response_model=BookingResponse)
def cancel_booking(
    req: CancelBookingRequest,
    site_id: str = Depends(get_site_id),
    uc: BookingUseCase = Depends(get_booking_use_case),
):
    try:
        booking = uc.cancel(site_id, booking_id=req.booking_id, email=req.email)
    except BookingError as e:
        raise to_http_error(e) from e
    return BookingResponse(booking=BookingSchema.from_entity(booking))


@router.post("/list", response_model=BookingsResponse)
def lookup_bookings(
    req: LookupBookingsRequest,
    site_id: str = Depends(get_site_id),
    uc: BookingUseCase = Depends(get_booking_use_case),
):
    try:
        bookings = uc.lookup(site_id, email=req.email, phone=req.phone)
    except BookingError as e:
        raise to_http_error(e) from e
    return BookingsResponse(bookings=[BookingSchema.from_entity(b) for b in bookings])
