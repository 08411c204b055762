"""
Relay REST API base library
"""

import logging
from typing import Any, Dict, Optional, Type

from fastapi import HTTPException, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import errors, schemas


logger = logging.getLogger(__name__)

ERROR_STATUS_CODES: Dict[Type[errors.RelayError], int] = {
    errors.ValidationError: 400,
    errors.NotFound: 404,
    errors.VersionConflict: 409,
    errors.RetryExhausted: 409,
    errors.ConfigurationError: 500,
    errors.TransportError: 502
}


def _make_error_response(
        request: Request,
        status_code: int,
        message: str,
        details: str,
        repeat: bool = False,
        headers: Optional[Dict[str, Any]] = None
) -> JSONResponse:
    return JSONResponse(jsonable_encoder(schemas.APIError(
        status=status_code,
        method=request.method,
        request=request.url.path,
        repeat=repeat,
        message=message,
        details=details
    )), status_code=status_code, headers=headers)


async def handle_generic_exception(request: Request, _: Exception):
    logger.exception("Unhandled exception caught in base exception handler!")
    return _make_error_response(
        request,
        500,
        "Unexpected server error. The requested action wasn't completed successfully.",
        ""
    )


async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    msgs = "\n".join(["\t" + error["msg"] for error in exc.errors()])
    return _make_error_response(
        request,
        400,
        f"Failed to process the request:\n{msgs}",
        str(exc.errors())
    )


def get_status_code(exc: errors.RelayError) -> int:
    """
    Determine the HTTP status code of the response for an upstream error
    """

    if isinstance(exc, errors.BatchAborted):
        return get_status_code(exc.cause)
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return 500


def is_repeatable(exc: errors.RelayError) -> bool:
    if isinstance(exc, errors.BatchAborted):
        return is_repeatable(exc.cause)
    return isinstance(exc, (errors.RetryExhausted, errors.VersionConflict))


async def handle_relay_error(request: Request, exc: errors.RelayError) -> Response:
    """
    Handle errors of the upstream clients and the store core to produce APIError models
    """

    status_code = get_status_code(exc)
    details = exc.details
    if isinstance(exc, errors.BatchAborted):
        committed = ", ".join(repr(result.file.path) for result in exc.completed) or "none"
        details += f"; committed before the failure: {committed}"

    log = logger.warning if status_code >= 500 else logger.debug
    log(f"{type(exc).__name__}: {exc.message} @ '{request.method} {request.url.path}' (details: {details})")
    return _make_error_response(
        request,
        status_code,
        exc.message,
        details,
        repeat=is_repeatable(exc)
    )


class APIException(HTTPException):
    """
    Base class for any kind of generic API exception
    """

    def __init__(
            self,
            status_code: int,
            detail: str,
            repeat: bool = False,
            message: Optional[str] = None,
            headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.repeat = repeat
        self.message = message

    @classmethod
    async def handle(cls, request: Request, exc: StarletteHTTPException) -> Response:
        """
        Handle exceptions in a generic way to produce APIError models
        """

        status_code = getattr(exc, "status_code", 500)
        repeat = getattr(exc, "repeat", False)
        message = getattr(exc, "message", None) or str(exc.detail or exc.__class__.__name__)

        logger.debug(
            f"{type(exc).__name__}: {message} @ '{request.method} "
            f"{request.url.path}' (details: {exc.detail})"
        )
        return _make_error_response(
            request,
            status_code,
            message,
            str(exc.detail),
            repeat=repeat,
            headers=getattr(exc, "headers", None)
        )


class Unauthorized(APIException):
    """
    Exception when the request didn't carry the valid shared API key
    """

    def __init__(self, detail: Optional[str] = None):
        super().__init__(
            status_code=401,
            detail=detail,
            repeat=False,
            message="Invalid or missing API key. Provide it via x-api-key header, "
                    "Authorization header, or api_key query parameter.",
            headers={"WWW-Authenticate": "Bearer"}
        )
