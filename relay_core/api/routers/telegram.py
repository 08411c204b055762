"""
Relay router module for the Telegram bot
"""

from typing import Optional

from fastapi import APIRouter, Depends

from ..dependency import LocalRequestData
from ... import schemas


router = APIRouter(prefix="/telegram", tags=["Telegram"])


@router.get("/updates", response_model=schemas.TelegramUpdates)
async def get_updates(
        offset: Optional[int] = None,
        limit: int = 100,
        timeout: int = 0,
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Return the incoming updates of the bot

    The `limit` must be between 1 and 100, the long polling `timeout` between 0 and 50 seconds.
    """

    updates = await local.telegram().get_updates(offset, limit, timeout)
    return schemas.TelegramUpdates(count=len(updates), updates=updates)


@router.get("/me", response_model=schemas.TelegramBotInfo)
async def get_bot_info(local: LocalRequestData = Depends(LocalRequestData)):
    return schemas.TelegramBotInfo(bot=await local.telegram().get_me())


@router.post("/send", response_model=schemas.TelegramSentMessage)
async def send_message(
        body: schemas.TelegramMessageBody,
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Send a text message to a chat, which is identified by `chatId` (or `chat_id`)
    """

    message = await local.telegram().send_message(body.chat_id, body.text)
    return schemas.TelegramSentMessage(message=message)
