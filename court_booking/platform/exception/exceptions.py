class CustomBaseError(Exception):
    """Base class for all custom exceptions - controls logging behavior in @Logger.io"""

    def __init__(self, message: str, status_code: int) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class InvalidArgumentError(CustomBaseError):
    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message, status_code)


class InvalidIntervalError(InvalidArgumentError):
    """Raised when a booking's end time does not come after its start time"""

    def __init__(self, message: str = 'end_time must be after start_time') -> None:
        super().__init__(message)


class NotFoundError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 404)


class InvalidTransitionError(CustomBaseError):
    """The requested status change is not allowed from the booking's current status"""

    def __init__(self, message: str) -> None:
        super().__init__(message, 409)


class WindowExpiredError(CustomBaseError):
    """Payment window has elapsed but the expiry timer has not flipped the status yet"""

    def __init__(self, message: str = 'Payment window has expired') -> None:
        super().__init__(message, 410)


class SlotConflictError(CustomBaseError):
    def __init__(self, message: str = 'Court is already booked for the requested time') -> None:
        super().__init__(message, 409)


class ConflictError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 409)


class VersionConflictError(CustomBaseError):
    """Store-level compare-and-swap failure; retried by the lifecycle engine"""

    def __init__(self, message: str = 'Booking was modified concurrently') -> None:
        super().__init__(message, 409)
