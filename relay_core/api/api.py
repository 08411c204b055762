"""
Relay core REST API definitions

The relay forwards requests to three upstream services: files are stored
in a GitHub repository using the contents API (with conflict-aware
create-or-update semantics for uploads), messages are exchanged with a
Telegram bot and images are uploaded to Cloudinary.

If an API key has been configured, every endpoint except `/health` and the
documentation requires it, either in the `x-api-key` header, as `Bearer`
token in the `Authorization` header or in the `api_key` query parameter.

All error responses use the schema of the `APIError`. The following
status codes are used:

1. `400` (Bad Request) for missing or malformed input, e.g. no file or
   no target path in an upload request. No upstream call has been made.
2. `401` (Unauthorized) when the API key is missing or invalid.
3. `404` (Not Found) when the file to delete doesn't exist in the store.
4. `409` (Conflict) when an upload still conflicted with concurrent
   writes after all retries. Repeating the request later may succeed.
5. `500` (Internal Server Error) when the credentials of the upstream
   service haven't been configured.
6. `502` (Bad Gateway) for network failures or unexpected responses of
   the upstream services.

A failed multi-file upload reports the status of the failing file and
lists the files that had been committed before the failure.
"""

import logging.config
import contextlib
from typing import Any, Callable, Dict, Optional

import fastapi
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import base
from .routers import router
from .. import errors, schemas, __version__
from ..settings import Settings


DEFAULT_EXCEPTION_HANDLERS: Dict[Any, Callable] = {
    StarletteHTTPException: base.APIException.handle,
    RequestValidationError: base.handle_request_validation_error,
    errors.RelayError: base.handle_relay_error,
    Exception: base.handle_generic_exception
}

ERROR_RESPONSES = {
    code: {"model": schemas.APIError}
    for code in (400, 401, 404, 409, 500, 502)
}


def create_app(
        settings: Optional[Settings] = None,
        configure_logging: bool = True
) -> fastapi.FastAPI:
    """
    Create a new ``FastAPI`` instance using the specified settings and switches

    This function is conveniently used to allow overwriting the settings
    before launching the application as well as to allow multiple ``FastAPI``
    instances in one program, which in turn makes unit testing much easier.
    The upstream HTTP session is shared by all requests of one application
    and closed when the application shuts down.

    :param settings: optional Settings instance (would be created if not present)
    :param configure_logging: switch whether to configure logging
    :return: new ``FastAPI`` instance
    """

    if settings is None:
        settings = Settings()

    if configure_logging:
        logging.config.dictConfig(settings.logging.model_dump())
    logger = logging.getLogger(__name__)
    logger.debug("Starting application...")

    @contextlib.asynccontextmanager
    async def lifespan(application: fastapi.FastAPI):
        logger.info("Starting API...")
        if settings.server.api_key is None:
            logger.warning("No API key configured, all endpoints are accessible without authentication!")
        yield
        logger.info("Shutting down...")
        session = getattr(application.state, "client_session", None)
        if session is not None and not session.closed:
            await session.close()

    app = fastapi.FastAPI(
        title="Relay core REST API",
        version=__version__,
        description=__doc__,
        responses=ERROR_RESPONSES,
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.client_session = None

    for exc, handler in DEFAULT_EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exc, handler)

    @app.get("/", include_in_schema=False)
    async def redirect_root():
        return fastapi.responses.RedirectResponse("./docs")

    app.include_router(router)
    return app


class APIWrapper:
    """
    Wrapper class around the FastAPI main object, accessible via the ``app`` property

    There should be only one global instance of this object, which should only
    export its functionality to hold the ``app`` property. This wrapper can be
    used to allow easy command-line usage via ``uvicorn`` calls. Example:

    .. code-block::

        uvicorn relay_core.api:api.app
    """

    def __init__(self):
        self._app: Optional[fastapi.FastAPI] = None

    def get_app(self) -> fastapi.FastAPI:
        return self.app

    def set_app(self, application: fastapi.FastAPI):
        if not isinstance(application, fastapi.FastAPI):
            raise TypeError
        self._app = application

    @property
    def app(self) -> fastapi.FastAPI:
        """
        Return the ``app`` instance (or create it with default settings if it doesn't exist)
        """

        if self._app is not None:
            return self._app
        self._app = create_app()
        return self._app


api = APIWrapper()
