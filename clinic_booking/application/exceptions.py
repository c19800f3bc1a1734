class BookingError(RuntimeError):
    """Base class for failures surfaced to booking clients."""
    pass


class ValidationError(BookingError):
    """Raised when a request is missing fields, is malformed, or falls outside the booking window."""
    pass


class NotFoundError(BookingError):
    """Raised when a service or booking cannot be found (or does not match the given email)."""
    pass


class ConflictError(BookingError):
    """Raised when the requested slot is no longer free."""
    pass


class ConfigurationError(BookingError):
    """Raised when a site has no booking settings."""
    pass


class StorageError(BookingError):
    """Raised when persisted booking data is unreadable or violates its schema."""
    pass
