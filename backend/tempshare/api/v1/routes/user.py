# tempshare/api/v1/routes/user.py
from fastapi import APIRouter, Depends
from tempshare.core.schemas.auth import SessionIdentity, SessionResponse
from tempshare.core.schemas.files import FileListItem, FileListResponse
from tempshare.core.utils import get_current_session, get_file_service
from tempshare.services.file_service import FileService

router = APIRouter(prefix="/user", tags=["user"])


@router.get("", response_model=SessionResponse)
async def get_me(identity: SessionIdentity = Depends(get_current_session)):
    """Текущий пользователь"""
    return SessionResponse(user=identity.user)


@router.get("/files", response_model=FileListResponse)
async def get_my_files(
    identity: SessionIdentity = Depends(get_current_session),
    file_service: FileService = Depends(get_file_service),
):
    """Неистёкшие файлы пользователя, новые первыми"""
    files = await file_service.list_for_owner(identity.user.id)
    return FileListResponse(files=[FileListItem.model_validate(f) for f in files])
