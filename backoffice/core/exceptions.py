"""
Back Office — Domain exceptions

Services raise these; the handler registered in main.py turns them into
JSON error responses. Nothing below the API layer raises HTTPException.
"""


class BackofficeError(Exception):
    status_code: int = 500
    error: str = "Internal Server Error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(BackofficeError):
    status_code = 404
    error = "Not Found"

    @classmethod
    def entity(cls, entity_type: str, entity_id: str) -> "NotFound":
        return cls(f"{entity_type} '{entity_id}' not found.")


class InvalidCredentials(BackofficeError):
    status_code = 401
    error = "Unauthorized"


class InvalidToken(BackofficeError):
    status_code = 401
    error = "Unauthorized"


class Forbidden(BackofficeError):
    status_code = 403
    error = "Forbidden"


class InvalidOperation(BackofficeError):
    status_code = 400
    error = "Bad Request"


class InsufficientStock(InvalidOperation):
    """Requested quantity exceeds what is on hand."""

    def __init__(self, product_name: str, requested: int, available: int):
        self.product_name = product_name
        self.requested = requested
        self.available = available
        self.shortfall = requested - available
        super().__init__(
            f"Insufficient stock for '{product_name}': requested={requested}, "
            f"available={available}, missing={self.shortfall}"
        )


class DuplicateEntity(BackofficeError):
    status_code = 409
    error = "Conflict"


class PaymentError(BackofficeError):
    status_code = 502
    error = "Bad Gateway"


class EmailDeliveryError(BackofficeError):
    status_code = 502
    error = "Bad Gateway"
