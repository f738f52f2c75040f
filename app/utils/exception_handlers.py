from typing import cast

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger

from app.core.exceptions import LinkError
from app.schemas.common import APIResponse, ErrorData


def link_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    exc = cast(LinkError, exc)
    # Upstream payloads stay in the logs; clients only get the kind and a generic message
    logger.debug(f"{exc.kind}: {exc.diagnostics}")
    return JSONResponse(
        status_code=exc.status_code,
        content=APIResponse(
            status="error", message=exc.message, data=ErrorData(kind=exc.kind)
        ).model_dump(),
    )


def http_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    exc = cast(HTTPException, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content=APIResponse(status="error", message=exc.detail).model_dump(),
    )


def validation_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    exc = cast(RequestValidationError, exc)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=APIResponse(
            status="error",
            message="Validation error",
            data=[
                {"loc": err["loc"], "msg": err["msg"], "type": err["type"]} for err in exc.errors()
            ],
        ).model_dump(),
    )


def general_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.opt(exception=exc).error("Unhandled error")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=APIResponse(status="error", message="發生未知錯誤，請稍後再試。").model_dump(),
    )
