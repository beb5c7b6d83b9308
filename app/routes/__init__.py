from fastapi import APIRouter

from .files_routes import router as files_router

router = APIRouter()

router.include_router(files_router)
