# tempshare/api/v1/routes/files.py
from typing import Optional
from urllib.parse import quote
from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile
from tempshare.core.exceptions import NotFoundError, ValidationError
from tempshare.core.limiter import limiter
from tempshare.core.schemas.auth import SessionIdentity
from tempshare.core.schemas.files import FileInfoResponse, SuccessResponse, UploadResponse, Uploader
from tempshare.core.utils import get_current_session, get_file_service
from tempshare.services.file_service import FileService
import re

router = APIRouter(prefix="/file", tags=["files"])

DEFAULT_EXPIRES_IN_DAYS = 7

_HEADER_UNSAFE = re.compile(r'[\x00-\x1f\x7f"\\]')


def content_disposition(filename: str) -> str:
    """attachment с ASCII-запасным именем и RFC 5987 filename*"""
    fallback = _HEADER_UNSAFE.sub("", filename.encode("ascii", "ignore").decode("ascii")).strip()
    return f"attachment; filename=\"{fallback or 'download'}\"; filename*=UTF-8''{quote(filename, safe='')}"


def parse_expires_in(raw: Optional[str]) -> int:
    if raw is None or not raw.strip():
        return DEFAULT_EXPIRES_IN_DAYS
    try:
        return int(raw.strip())
    except ValueError:
        raise ValidationError("Expiration time must be a whole number of days")


@router.post("/upload", response_model=UploadResponse)
@limiter.limit("30/minute")
async def upload_file(
    request: Request,
    file: Optional[UploadFile] = File(None),
    expires_in: Optional[str] = Form(None, alias="expiresIn"),
    identity: SessionIdentity = Depends(get_current_session),
    file_service: FileService = Depends(get_file_service),
):
    """Загрузка файла: сначала в хранилище, потом запись в БД"""
    if file is None or not file.filename:
        raise ValidationError("No file provided")

    expires_in_days = file_service.validate_expiration(parse_expires_in(expires_in))
    if file.size is not None:
        file_service.validate_size(file.size)

    data = await file.read()
    record = await file_service.upload(
        owner_id=identity.user.id,
        filename=file.filename,
        content_type=file.content_type,
        data=data,
        expires_in_days=expires_in_days,
    )

    return UploadResponse(
        file_id=record.id,
        filename=record.filename,
        size=record.size,
        expires_at=record.expires_at,
        download_url=f"/api/file/{record.id}/download",
    )


@router.get("/{file_id}", response_model=FileInfoResponse)
async def get_file_info(
    file_id: str,
    file_service: FileService = Depends(get_file_service),
):
    """Публичные метаданные; истёкший файл отдаётся как несуществующий"""
    record = await file_service.get_live(file_id)
    return FileInfoResponse(
        id=record.id,
        filename=record.filename,
        content_type=record.content_type,
        size=record.size,
        expires_at=record.expires_at,
        download_count=record.download_count,
        created_at=record.created_at,
        expired=False,
        uploader=Uploader(
            name=record.owner.name if record.owner else None,
            avatar=record.owner.image if record.owner else None,
        ),
    )


@router.get("/{file_id}/download")
async def download_file(
    file_id: str,
    file_service: FileService = Depends(get_file_service),
):
    """Отдача байтов файла и учёт скачивания"""
    record, stored = await file_service.open_download(file_id)
    return Response(
        content=stored.body,
        media_type=record.content_type or stored.content_type or "application/octet-stream",
        headers={"Content-Disposition": content_disposition(record.filename)},
    )


@router.delete("/{file_id}", response_model=SuccessResponse)
async def delete_file(
    file_id: str,
    identity: SessionIdentity = Depends(get_current_session),
    file_service: FileService = Depends(get_file_service),
):
    """Удаление файла владельцем"""
    removed = await file_service.delete_file(file_id, identity.user.id)
    if not removed:
        raise NotFoundError()
    return SuccessResponse(success=True)
