from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from pocket_cdn.api.deps import get_db
from pocket_cdn.api.templating import render_not_found, render_page
from pocket_cdn.core.config import Settings, get_settings
from pocket_cdn.services import upload_links as upload_link_service

router = APIRouter(tags=["pages"])


def _landing_context(settings: Settings, link_name: str | None = None) -> dict:
    return {
        "link_name": link_name,
        "show_files_link": not settings.view_list_with_pass,
        "listing_restricted": settings.view_list_with_pass,
        "auth_enabled": settings.auth_enabled,
    }


@router.get("/", name="index")
async def index(request: Request, settings: Settings = Depends(get_settings)):
    return render_page(request, "index.html", _landing_context(settings))


@router.get("/upload/{name}", name="upload_link_page")
async def upload_link_page(
    name: str,
    request: Request,
    settings: Settings = Depends(get_settings),
    session: AsyncSession = Depends(get_db),
):
    link = await upload_link_service.get_active_upload_link(session, name)
    if link is None:
        return render_not_found(request)
    return render_page(request, "index.html", _landing_context(settings, link_name=link.name))
