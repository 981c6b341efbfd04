import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from pocket_cdn.api.deps import get_db
from pocket_cdn.core.config import Settings, get_settings
from pocket_cdn.core.security import api_key_from_request, api_key_matches
from pocket_cdn.schemas import ErrorResponse, UploadLinkCreate, UploadLinkRead, UploadResponse
from pocket_cdn.services import upload_links as upload_link_service
from pocket_cdn.services.storage import StorageService, get_storage_service
from pocket_cdn.services.uploads import clean_file_name, store_upload

logger = logging.getLogger(__name__)

router = APIRouter(tags=["uploads"])


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(ErrorResponse(error=message).model_dump(), status_code=status_code)


@router.post(
    "/upload",
    response_model=UploadResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
async def upload_file(
    request: Request,
    file: UploadFile | None = File(default=None),
    name: str | None = Form(default=None),
    settings: Settings = Depends(get_settings),
    session: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage_service),
):
    authorized = False
    if name:
        link = await upload_link_service.get_active_upload_link(session, name)
        if link is not None:
            await upload_link_service.rewrite_upload_link(session, link)
            authorized = True
            logger.info("Upload authorized by link %s", name)

    if not authorized and settings.auth_enabled:
        if not api_key_matches(api_key_from_request(request), settings.api_key):
            client = request.client.host if request.client else "unknown"
            logger.warning("Rejected upload from %s: bad API key", client)
            return _error("Unauthorized", status.HTTP_401_UNAUTHORIZED)

    if file is None or not file.filename:
        return _error("No file uploaded", status.HTTP_400_BAD_REQUEST)

    file_name = clean_file_name(file.filename)
    if not file_name:
        return _error("Invalid file name", status.HTTP_400_BAD_REQUEST)

    data = await file.read()
    try:
        results = await store_upload(storage, file_name, file.content_type, data)
    except ValueError as exc:
        logger.warning("Rejected upload key %r: %s", file_name, exc)
        return _error("Invalid file name", status.HTTP_400_BAD_REQUEST)
    return UploadResponse(file_name=file_name, results=results)


@router.post(
    "/api/uploadkey",
    response_model=UploadLinkRead,
    status_code=status.HTTP_201_CREATED,
    responses={401: {"model": ErrorResponse}},
)
async def create_upload_link(
    payload: UploadLinkCreate,
    request: Request,
    settings: Settings = Depends(get_settings),
    session: AsyncSession = Depends(get_db),
):
    if settings.auth_enabled and not api_key_matches(payload.key, settings.api_key):
        return _error("Unauthorized", status.HTTP_401_UNAUTHORIZED)

    link = await upload_link_service.create_upload_link(
        session,
        payload.name,
        payload.key,
        ttl=timedelta(hours=settings.upload_link_ttl_hours),
    )
    return UploadLinkRead(
        name=link.name,
        upload_url=str(request.url_for("upload_link_page", name=link.name)),
        expires_at=upload_link_service.as_utc(link.expires_at),
    )
