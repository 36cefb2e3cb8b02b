from __future__ import annotations

from typing import Optional

from pydantic import Field, field_validator

from vanish.schemas.common import CamelModel
from vanish.security.sanitizer import InputSanitizer


class BlobInitRequest(CamelModel):
    mime_type: str = Field(..., min_length=3, max_length=127)
    ttl_ms: Optional[int] = Field(default=None, gt=0, le=7 * 24 * 3600 * 1000)
    view_once: bool = False

    @field_validator('mime_type')
    @classmethod
    def validate_mime_type(cls, v: str) -> str:
        return InputSanitizer.sanitize_mime_type(v)


class BlobInitResponse(CamelModel):
    success: bool = True
    id: str
    upload_token: str
    expires_at: int  # epoch milliseconds


class BlobUploadResponse(CamelModel):
    success: bool = True
    id: str
    size: int
    expires_at: int


class DownloadTokenRequest(CamelModel):
    id: str = Field(..., min_length=1, max_length=64)
    ttl_seconds: int = Field(default=300, ge=1)


class DownloadTokenResponse(CamelModel):
    success: bool = True
    download_token: str
