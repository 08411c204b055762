"""
Relay API dependency library
"""

import logging
import secrets
from typing import Optional

import aiohttp
from fastapi import Depends, Request, Response

from . import base
from ..services import ImageUploader, TelegramBot
from ..settings import Settings
from ..store import BatchUploader, ConflictAwareWriter, RemoteFileStore


async def get_client_session(request: Request) -> aiohttp.ClientSession:
    """
    Return the shared upstream HTTP session of the application, creating it on first use

    The session is bound to the running event loop, so this dependency
    must be a coroutine function; FastAPI runs synchronous dependencies
    in a worker thread without a loop.
    """

    state = request.app.state
    if getattr(state, "client_session", None) is None or state.client_session.closed:
        state.client_session = aiohttp.ClientSession()
    return state.client_session


def get_request_api_key(request: Request) -> Optional[str]:
    key = request.headers.get("x-api-key")
    if key:
        return key
    authorization = request.headers.get("Authorization")
    if authorization and authorization.startswith("Bearer "):
        return authorization[len("Bearer "):]
    return request.query_params.get("api_key")


async def check_api_key(request: Request) -> None:
    """
    Verify the static shared secret, if one has been configured for the server
    """

    expected = request.app.state.settings.server.api_key
    if expected is None:
        return
    provided = get_request_api_key(request)
    if not provided or not secrets.compare_digest(provided.encode("UTF-8"), expected.encode("UTF-8")):
        raise base.Unauthorized(f"{request.method} {request.url.path}")


class MinimalRequestData:
    """
    Collection of minimal dependencies used only for internal functionalities
    """

    def __init__(self, request: Request, response: Response):
        self.request = request
        self.response = response
        self.headers = request.headers

    @property
    def config(self) -> Settings:
        return self.request.app.state.settings


class LocalRequestData(MinimalRequestData):
    """
    Collection of core dependencies used by all authenticated path operations

    The upstream clients are created per request from the process-wide
    settings and the shared HTTP session. Creating one raises a
    ``ConfigurationError`` when its credentials are missing, which
    happens before any upstream call of the request.
    """

    def __init__(
            self,
            request: Request,
            response: Response,
            _: None = Depends(check_api_key),
            session: aiohttp.ClientSession = Depends(get_client_session)
    ):
        super().__init__(request, response)
        self.session = session
        self.logger = logging.getLogger(f"{__name__}.{request.url.path.strip('/').split('/')[0] or 'root'}")

    def store(self) -> RemoteFileStore:
        return RemoteFileStore(self.config.github, self.session)

    def writer(self) -> ConflictAwareWriter:
        return ConflictAwareWriter(
            self.store(),
            max_attempts=self.config.github.max_attempts,
            base_delay=self.config.github.base_delay,
            default_branch=self.config.github.default_branch,
            strict_lookup=self.config.github.strict_lookup
        )

    def batch(self) -> BatchUploader:
        return BatchUploader(self.writer())

    def telegram(self) -> TelegramBot:
        return TelegramBot(self.config.telegram, self.session)

    def images(self) -> ImageUploader:
        return ImageUploader(self.config.cloudinary, self.session)
