"""Custom exception classes and handlers."""

from fastapi import FastAPI, status
from fastapi.responses import JSONResponse

SLOT_TAKEN_MESSAGE = "This time slot is already booked. Please select a different time."


class BusinessLogicError(Exception):
    """Raised for domain-specific validation errors."""

    def __init__(self, detail: str, status_code: int = status.HTTP_422_UNPROCESSABLE_ENTITY):
        self.detail = detail
        self.status_code = status_code
        super().__init__(detail)


class ValidationError(BusinessLogicError):
    """Malformed booking input; detected before the store is touched."""

    def __init__(self, detail: str):
        super().__init__(detail, status_code=status.HTTP_400_BAD_REQUEST)


class ConflictError(BusinessLogicError):
    """An active appointment already occupies (part of) the requested slot."""

    def __init__(self, detail: str = SLOT_TAKEN_MESSAGE):
        super().__init__(detail, status_code=status.HTTP_409_CONFLICT)


class StoreError(BusinessLogicError):
    """The appointment store could not complete a read or write."""

    def __init__(self, detail: str = "Appointment store is unavailable, please retry"):
        super().__init__(detail, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)


def register_exception_handlers(app: FastAPI) -> None:
    """Attach shared exception handlers to the FastAPI app."""

    @app.exception_handler(BusinessLogicError)
    async def _business_error_handler(_: FastAPI, exc: BusinessLogicError):
        return JSONResponse(
            {"success": False, "message": exc.detail},
            status_code=exc.status_code,
        )
