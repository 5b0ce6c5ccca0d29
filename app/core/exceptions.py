"""Custom application exceptions."""


class AppException(Exception):
    """Base application exception."""

    code = "InternalError"

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundException(AppException):
    """Resource not found exception."""

    code = "NotFound"

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class ForbiddenException(AppException):
    """Forbidden access exception."""

    code = "Forbidden"

    def __init__(self, message: str = "Forbidden"):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403)


class BadRequestException(AppException):
    """Bad request exception."""

    code = "BadRequest"

    def __init__(self, message: str = "Bad request"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class ConflictException(AppException):
    """Conflict exception."""

    code = "Conflict"

    def __init__(self, message: str = "Conflict"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class ServiceUnavailableException(AppException):
    """Dependency temporarily unavailable."""

    code = "ServiceUnavailable"

    def __init__(self, message: str = "Service temporarily unavailable"):
        """Initialize with 503 status code."""
        super().__init__(message, status_code=503)


# Booking validation errors


class MissingFieldError(BadRequestException):
    """A required booking field was not provided."""

    code = "MissingField"

    def __init__(self, fields: list[str]):
        self.fields = fields
        super().__init__(f"Please provide all required fields ({', '.join(fields)})")


class InvalidDoctorError(BadRequestException):
    """Doctor does not exist, is not a doctor, or is inactive."""

    code = "InvalidDoctor"

    def __init__(self, message: str = "Invalid or unavailable doctor"):
        super().__init__(message)


class PastDateError(BadRequestException):
    """Requested date is before today."""

    code = "PastDate"

    def __init__(self, message: str = "Cannot book appointments in the past"):
        super().__init__(message)


class PastTimeError(BadRequestException):
    """Requested time today has already passed."""

    code = "PastTime"

    def __init__(
        self,
        message: str = "Cannot book appointments in the past. Please select a future time.",
    ):
        super().__init__(message)


class InvalidTimeSlotError(BadRequestException):
    """Requested time is not on the clinic slot grid."""

    code = "InvalidTimeSlot"


class SlotConflictError(ConflictException):
    """Doctor already has an active appointment at that slot."""

    code = "SlotConflict"

    def __init__(
        self,
        message: str = "Doctor is not available at this time. Please select another time slot.",
    ):
        super().__init__(message)


# Lifecycle errors


class AccessDeniedError(ForbiddenException):
    """Caller does not own the appointment."""

    code = "AccessDenied"

    def __init__(self, message: str = "Access denied"):
        super().__init__(message)


class ForbiddenTransitionError(ForbiddenException):
    """Requested status change is not permitted for this role or state."""

    code = "ForbiddenTransition"


class ReasonRequiredError(BadRequestException):
    """Doctor cancelled without giving a reason."""

    code = "ReasonRequired"

    def __init__(
        self,
        message: str = "Cancellation reason is required when cancelling an appointment",
    ):
        super().__init__(message)


class ConcurrentUpdateError(ConflictException):
    """Appointment kept changing underneath a status update."""

    code = "ConcurrentUpdate"

    def __init__(self, message: str = "Appointment was modified concurrently, please retry"):
        super().__init__(message)


# Storage errors


class TransientStoreError(ServiceUnavailableException):
    """Store timed out or lost its connection; the operation may be retried."""

    code = "TransientStoreError"

    def __init__(self, message: str = "Appointment store temporarily unavailable"):
        super().__init__(message)
