import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import RedirectResponse, Response, StreamingResponse

from pocket_cdn.api.templating import render_not_found, render_page
from pocket_cdn.core.config import Settings, get_settings
from pocket_cdn.core.security import api_key_from_request, api_key_matches
from pocket_cdn.services.delivery import CACHE_CONTROL, etag_matches, fetch_delivery
from pocket_cdn.services.storage import StorageService, get_storage_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["files"])


@router.get("/files", name="list_files")
async def list_files(
    request: Request,
    settings: Settings = Depends(get_settings),
    storage: StorageService = Depends(get_storage_service),
):
    if settings.view_list_with_pass:
        if settings.listing_misconfigured:
            logger.error("VIEW_LIST_WITH_PASS is set but API_KEY is not configured")
            return render_page(
                request,
                "misconfigured.html",
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
        if not api_key_matches(api_key_from_request(request, allow_header=False), settings.api_key):
            return render_page(
                request,
                "auth_required.html",
                status_code=status.HTTP_401_UNAUTHORIZED,
            )

    objects = await storage.list_objects()
    return render_page(request, "files.html", {"files": objects})


@router.get("/files/{file_name}", name="get_file")
async def get_file(
    file_name: str,
    request: Request,
    storage: StorageService = Depends(get_storage_service),
):
    try:
        delivery = await fetch_delivery(storage, file_name, request.headers.get("accept-encoding"))
    except ValueError:
        logger.warning("Rejected storage key %r", file_name)
        delivery = None
    if delivery is None:
        return render_not_found(request, file_name)

    # Range requests are answered with the full body and status 200.
    headers = delivery.headers()
    if etag_matches(request.headers.get("if-none-match"), delivery.etag):
        delivery.obj.close()
        headers.pop("Content-Length", None)
        return Response(status_code=status.HTTP_304_NOT_MODIFIED, headers=headers)

    return StreamingResponse(
        delivery.body(),
        status_code=status.HTTP_200_OK,
        headers=headers,
    )


@router.get("/download/{file_name}", name="download_file")
async def download_file(file_name: str):
    return RedirectResponse(
        url=f"/files/{quote(file_name)}",
        status_code=status.HTTP_302_FOUND,
        headers={"Cache-Control": CACHE_CONTROL},
    )
