from fastapi import HTTPException

from clinic_booking.application.exceptions import (
    BookingError,
    ConfigurationError,
    ConflictError,
    NotFoundError,
    StorageError,
    ValidationError,
)

STATUS_BY_ERROR: dict[type[BookingError], int] = {
    ValidationError: 400,
    ConfigurationError: 400,
    NotFoundError: 404,
    ConflictError: 409,
    StorageError: 500,
}


def to_http_error(error: BookingError) -> HTTPException:
    for error_type, status_code in STATUS_BY_ERROR.items():
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(status_code=500, detail="Unexpected booking error")
