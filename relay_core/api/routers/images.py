"""
Relay router module for the image uploads to Cloudinary
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, UploadFile
from starlette.datastructures import UploadFile as FormFile

from ..dependency import LocalRequestData
from ... import errors, schemas


router = APIRouter(tags=["Images"])


@router.post("/upload", response_model=Dict[str, Any])
async def upload_image(
        file: Optional[UploadFile] = File(None),
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Upload a single JPEG, PNG, GIF or WebP image from the `file` form field

    The response is the complete upload result as returned by Cloudinary.
    """

    uploader = local.images()
    if file is None:
        raise errors.ValidationError("No file provided")
    return await uploader.upload_asset(file.filename, file.content_type, await file.read())


@router.post("/upload-multiple", response_model=schemas.ImageBatch)
async def upload_multiple_images(local: LocalRequestData = Depends(LocalRequestData)):
    """
    Upload multiple images, reporting the successful and the failed files separately

    Files are accepted in any form field. A failed image doesn't
    abort the request, it's listed as failed instead.
    """

    uploader = local.images()
    form = await local.request.form()
    files = [value for _, value in form.multi_items() if isinstance(value, FormFile)]
    if not files:
        raise errors.ValidationError("No files provided")
    return await uploader.upload_images([
        (upload.filename, upload.content_type, await upload.read())
        for upload in files
    ])
