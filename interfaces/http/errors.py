import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from application.common.contracts import ErrorCode
from application.common.errors import GatewayError

logger = logging.getLogger(__name__)

STATUS_BY_CODE = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.STORE_ERROR: 500,
    ErrorCode.PROCESS_STARTUP_ERROR: 500,
    ErrorCode.PROCESS_EXIT_ERROR: 500,
    ErrorCode.CONVERSION_REJECTED: 503,
}


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(GatewayError)
    async def gateway_error(request: Request, exc: GatewayError) -> JSONResponse:
        status = STATUS_BY_CODE.get(exc.code, 500)
        if status >= 500:
            logger.error(f"{request.method} {request.url.path} -> {status} {exc.code.value}: {exc}")
        else:
            logger.warning(f"{request.method} {request.url.path} -> {status} {exc.code.value}: {exc}")
        return JSONResponse(status_code=status, content={exc.response_field: exc.public_message})

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> PlainTextResponse:
        logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
        return PlainTextResponse("Something broke!", status_code=500)
