"""
Relay core schemas for the simplified JSON envelopes of the HTTP API

Successful responses always carry ``success`` set to true together with an
optional human-readable ``message``, failures use the ``APIError`` model.
"""

from typing import Any, Dict, List, Optional, Union

import pydantic

from .store import RemoteFile


__all__ = [
    "Envelope",
    "FileInfo",
    "FileEnvelope",
    "FileListEnvelope",
    "DeletionBody",
    "TelegramUpdates",
    "TelegramBotInfo",
    "TelegramMessageBody",
    "TelegramSentMessage",
    "ImageInfo",
    "ImageFailure",
    "ImageBatch"
]


class Envelope(pydantic.BaseModel):
    success: bool = True
    message: Optional[str] = None


class FileInfo(pydantic.BaseModel):
    name: str
    path: str
    type: str = "file"
    size: pydantic.NonNegativeInt
    sha: str
    url: Optional[str] = None
    download_url: Optional[str] = None

    @classmethod
    def from_remote(cls, remote: RemoteFile) -> "FileInfo":
        return cls(**remote.model_dump())


class FileEnvelope(Envelope):
    data: FileInfo


class FileListEnvelope(Envelope):
    data: List[FileInfo]


class DeletionBody(pydantic.BaseModel):
    path: pydantic.constr(min_length=1)
    message: Optional[str] = None
    branch: Optional[pydantic.constr(min_length=1)] = None


class TelegramUpdates(Envelope):
    count: pydantic.NonNegativeInt
    updates: List[Dict[str, Any]]


class TelegramBotInfo(Envelope):
    bot: Dict[str, Any]


class TelegramMessageBody(pydantic.BaseModel):
    chat_id: Union[int, pydantic.constr(min_length=1)] = pydantic.Field(
        validation_alias=pydantic.AliasChoices("chatId", "chat_id")
    )
    text: pydantic.constr(min_length=1, max_length=4096)


class TelegramSentMessage(pydantic.BaseModel):
    success: bool = True
    message: Dict[str, Any]


class ImageInfo(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(populate_by_name=True)

    file_name: str = pydantic.Field(alias="fileName")
    url: str
    public_id: str = pydantic.Field(alias="publicId")
    format: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    size: Optional[pydantic.NonNegativeInt] = None


class ImageFailure(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(populate_by_name=True)

    file_name: str = pydantic.Field(alias="fileName")
    error: str


class ImageBatch(pydantic.BaseModel):
    """
    Report of a multi-image upload, serialized with camelCase keys like the single images
    """

    model_config = pydantic.ConfigDict(populate_by_name=True)

    successful: List[ImageInfo]
    failed: List[ImageFailure]
    total_uploaded: pydantic.NonNegativeInt = pydantic.Field(alias="totalUploaded")
    total_failed: pydantic.NonNegativeInt = pydantic.Field(alias="totalFailed")
    total: pydantic.NonNegativeInt
