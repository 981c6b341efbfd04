from types import MappingProxyType

DEFAULT_CONTENT_TYPE = "application/octet-stream"

MIME_TYPES = MappingProxyType(
    {
        "mp4": "video/mp4",
        "pdf": "application/pdf",
        "webm": "video/webm",
        "png": "image/png",
        "jpg": "image/jpeg",
        "jpeg": "image/jpeg",
        "html": "text/html",
        "js": "application/javascript",
        "css": "text/css",
        "json": "application/json",
        "txt": "text/plain",
        "svg": "image/svg+xml",
        "ico": "image/x-icon",
    }
)


def file_extension(file_name: str) -> str:
    """Lowercase text after the last dot, or the whole name when there is no dot."""
    return file_name.rsplit(".", 1)[-1].lower()


def get_content_type(file_name: str) -> str:
    return MIME_TYPES.get(file_extension(file_name), DEFAULT_CONTENT_TYPE)
