"""
Relay router module for the file storage in the GitHub repository
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from ..dependency import LocalRequestData
from ... import errors, schemas
from ...store import PendingFile


router = APIRouter(prefix="/github", tags=["GitHub"])


@router.get("/verify", response_model=schemas.AccessReport)
async def verify_access(local: LocalRequestData = Depends(LocalRequestData)):
    """
    Verify that the configured token is valid and grants access to the repository

    A `401` status code is used when the token was rejected,
    but the body is still the access report in that case.
    """

    report = await local.store().verify_access()
    if not report.authenticated:
        local.response.status_code = 401
    return report


@router.post("/upload", response_model=schemas.FileEnvelope)
async def upload_file(
        file: Optional[UploadFile] = File(None),
        path: Optional[str] = Form(None),
        message: Optional[str] = Form(None),
        branch: Optional[str] = Form(None),
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Create or update one file in the repository

    A `path` ending with a slash is handled as directory, where the file
    will be stored with a unique name derived from the uploaded file name.
    Any other `path` is used as is, overwriting an existing file there.
    Concurrent writes to the same file are retried a few times.

    A `400` error is returned when the file or the path are missing. A `409`
    error is returned when the file still conflicted after all attempts.
    """

    writer = local.writer()
    if file is None:
        raise errors.ValidationError("No file provided")
    if not path:
        raise errors.ValidationError("Path is required")

    local.logger.info(f"Upload request for {file.filename!r} to {path!r} on branch {branch or writer.default_branch!r}")
    result = await writer.upload(await file.read(), path, file.filename, message or None, branch or None)
    return schemas.FileEnvelope(
        message="File uploaded successfully",
        data=schemas.FileInfo.from_remote(result.file)
    )


@router.post("/upload-multiple", response_model=schemas.FileListEnvelope)
async def upload_multiple_files(
        files: Optional[List[UploadFile]] = File(None),
        file: Optional[List[UploadFile]] = File(None),
        path: Optional[str] = Form(None),
        message: Optional[str] = Form(None),
        branch: Optional[str] = Form(None),
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Upload multiple files one after another below the same directory

    The files may be given as repeated `files` or `file` fields. Every
    file gets a unique name derived from its original file name below
    `path`. The first file that fails aborts the request. Files uploaded
    before the failure are listed in the error details, since they are
    not rolled back; files after it are not attempted at all.
    """

    batch = local.batch()
    uploads = (files or []) + (file or [])
    if not uploads:
        raise errors.ValidationError("No files provided")
    if not path:
        raise errors.ValidationError("Path is required")

    pending = [PendingFile(upload.filename, await upload.read()) for upload in uploads]
    local.logger.info(f"Upload request for {len(pending)} file(s) below {path!r}")
    results = await batch.upload_all(pending, path, message or None, branch or None)
    return schemas.FileListEnvelope(
        message=f"{len(results)} files uploaded successfully",
        data=[schemas.FileInfo.from_remote(result.file) for result in results]
    )


@router.delete("/delete", response_model=schemas.Envelope)
async def delete_file(
        body: schemas.DeletionBody,
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Delete a file from the repository

    A `404` error is returned when the file doesn't exist. A `409` error
    is returned when the file was changed during the deletion.
    """

    store = local.store()
    await store.remove(body.path, body.message, body.branch or local.config.github.default_branch)
    return schemas.Envelope(message="File deleted successfully")


@router.get("/list", response_model=schemas.FileListEnvelope)
async def list_files(
        path: str = "",
        branch: Optional[str] = None,
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    List the entries of a directory in the repository (the root directory by default)
    """

    entries = await local.store().listing(path, branch)
    return schemas.FileListEnvelope(data=[schemas.FileInfo.from_remote(entry) for entry in entries])
