from pocket_cdn.schemas.storage import (
    ErrorResponse,
    UploadLinkCreate,
    UploadLinkRead,
    UploadResponse,
)

__all__ = [
    "UploadResponse",
    "ErrorResponse",
    "UploadLinkCreate",
    "UploadLinkRead",
]
