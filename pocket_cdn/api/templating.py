from pathlib import Path
from typing import Any

from fastapi import Request
from fastapi.templating import Jinja2Templates
from starlette.responses import HTMLResponse

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parents[1] / "templates"))


def _file_size(size: int) -> str:
    return f"{size / 1024:.2f} KB"


templates.env.filters["file_size"] = _file_size


def render_page(
    request: Request,
    template: str,
    context: dict[str, Any] | None = None,
    status_code: int = 200,
    headers: dict[str, str] | None = None,
) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        template,
        context or {},
        status_code=status_code,
        headers=headers,
    )


def render_not_found(request: Request, file_name: str | None = None) -> HTMLResponse:
    template = "file_not_found.html" if file_name else "not_found.html"
    return render_page(request, template, {"file_name": file_name}, status_code=404)
