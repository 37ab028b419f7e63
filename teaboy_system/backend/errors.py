class OrderServiceError(Exception):
    """Base class for errors surfaced to the HTTP layer."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(OrderServiceError):
    status_code = 404


class ValidationError(OrderServiceError):
    status_code = 400


class Conflict(OrderServiceError):
    status_code = 409


class PersistenceFailure(OrderServiceError):
    """A write exhausted every fallback tier; the change was not saved."""

    status_code = 500


class PayloadTooLarge(OrderServiceError):
    status_code = 413
