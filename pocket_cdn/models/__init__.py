from pocket_cdn.models.upload_link import UploadLink

__all__ = [
    "UploadLink",
]
