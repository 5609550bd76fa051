from fastapi import APIRouter
from tempshare.api.v1.routes import auth
from .user import router as user_router
from .files import router as files_router


api_router = APIRouter()

api_router.include_router(auth.router, tags=["auth"])
api_router.include_router(user_router)
api_router.include_router(files_router)
