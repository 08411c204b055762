"""
Pass-through client for the Telegram bot API
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Union

import aiohttp

from .. import errors
from ..misc.logger import enforce_logger
from ..schemas import config


MAX_UPDATES_LIMIT = 100
MAX_POLLING_TIMEOUT = 50


class TelegramBot:
    """
    Minimal Telegram bot API client for updates, bot info and text messages

    The bot token is part of every URL, so URLs are never logged.
    """

    def __init__(
            self,
            telegram: config.TelegramConfig,
            session: aiohttp.ClientSession,
            logger: Optional[logging.Logger] = None
    ):
        if not telegram.bot_token:
            raise errors.ConfigurationError("Telegram bot token not configured")
        self.config = telegram
        self.session = session
        self.logger = enforce_logger(logger, __name__)
        self._base_url = f"{telegram.base_url}/bot{telegram.bot_token}"

    async def _call(
            self,
            method: str,
            params: Optional[Dict[str, str]] = None,
            payload: Optional[Dict[str, Any]] = None,
            extra_timeout: float = 0
    ) -> Any:
        url = f"{self._base_url}/{method}"
        timeout = aiohttp.ClientTimeout(total=self.config.timeout + extra_timeout)
        try:
            if payload is None:
                request = self.session.get(url, params=params, timeout=timeout)
            else:
                request = self.session.post(url, json=payload, timeout=timeout)
            async with request as response:
                status = response.status
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            raise errors.TransportError(f"{type(exc).__name__} during Telegram API call {method!r}") from exc

        if not isinstance(data, dict) or not data.get("ok"):
            description = data.get("description") if isinstance(data, dict) else None
            code = data.get("error_code", status) if isinstance(data, dict) else status
            self.logger.warning(f"Telegram API call {method!r} failed with code {code}: {description}")
            raise errors.TransportError(f"Telegram API Error: {description or 'unknown error'}", code)
        return data.get("result")

    async def get_updates(
            self,
            offset: Optional[int] = None,
            limit: int = MAX_UPDATES_LIMIT,
            timeout: int = 0
    ) -> List[Dict[str, Any]]:
        """
        Get incoming updates of the bot using (optionally long) polling

        :param offset: identifier of the first update to be returned
        :param limit: maximum number of updates (1-100)
        :param timeout: timeout in seconds for long polling (0-50)
        :return: list of update objects
        """

        if not 1 <= limit <= MAX_UPDATES_LIMIT:
            raise errors.ValidationError(f"The limit must be between 1 and {MAX_UPDATES_LIMIT}")
        if not 0 <= timeout <= MAX_POLLING_TIMEOUT:
            raise errors.ValidationError(f"The timeout must be between 0 and {MAX_POLLING_TIMEOUT}")
        params = {"limit": str(limit), "timeout": str(timeout)}
        if offset is not None:
            params["offset"] = str(offset)
        return await self._call("getUpdates", params=params, extra_timeout=timeout)

    async def get_me(self) -> Dict[str, Any]:
        return await self._call("getMe")

    async def send_message(self, chat_id: Union[int, str], text: str) -> Dict[str, Any]:
        if not chat_id or not text:
            raise errors.ValidationError("chatId and text are required")
        return await self._call("sendMessage", payload={"chat_id": chat_id, "text": text})
