from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from application.common.contracts import ErrorCode


class GatewayError(Exception):
    """Base for every failure that ends a request.

    ``str(err)`` carries the full detail for the server log; ``public_message``
    is the only text sent back to the caller.
    """

    code: ErrorCode = ErrorCode.STORE_ERROR
    public_message: str = 'Request failed.'
    response_field: str = 'error'

    def __init__(self, detail: str = '', *, public_message: str | None = None):
        super().__init__(detail or self.public_message)
        if public_message is not None:
            self.public_message = public_message


class StoreError(GatewayError):
    code = ErrorCode.STORE_ERROR
    public_message = 'Object store request failed.'


class NotFoundError(GatewayError):
    code = ErrorCode.NOT_FOUND
    public_message = 'Not found.'


class ValidationError(GatewayError):
    code = ErrorCode.VALIDATION_ERROR
    public_message = 'Invalid request.'


class ProcessStartupError(GatewayError):
    code = ErrorCode.PROCESS_STARTUP_ERROR
    public_message = 'Failed to start conversion process.'
    response_field = 'message'


class ProcessExitError(GatewayError):
    code = ErrorCode.PROCESS_EXIT_ERROR
    public_message = 'Conversion failed.'
    response_field = 'message'

    def __init__(self, detail: str = '', *, exit_code: int | None = None, **kwargs):
        super().__init__(detail, **kwargs)
        self.exit_code = exit_code


class ConversionRejected(GatewayError):
    code = ErrorCode.CONVERSION_REJECTED
    public_message = 'Conversion queue is full, try again later.'
    response_field = 'message'


@contextmanager
def store_failure_message(message: str) -> Iterator[None]:
    """Give StoreErrors raised inside the block a route-specific public message."""
    try:
        yield
    except StoreError as err:
        err.public_message = message
        raise
