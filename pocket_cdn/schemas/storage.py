from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

UPLOAD_LINK_NAME_PATTERN = r"^[A-Za-z0-9._-]+$"


class UploadResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = "File uploaded successfully"
    file_name: str = Field(..., alias="fileName")
    results: list[str]


class ErrorResponse(BaseModel):
    error: str


class UploadLinkCreate(BaseModel):
    key: str = Field(default="", max_length=255)
    name: str = Field(..., min_length=1, max_length=200, pattern=UPLOAD_LINK_NAME_PATTERN)


class UploadLinkRead(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = "Upload link created"
    name: str
    upload_url: str = Field(..., alias="uploadUrl")
    expires_at: datetime = Field(..., alias="expiresAt")
