"""Pydantic schemas for the upload service API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class FileUploadResponse(BaseModel):
    """Upload service reply to a successful upload (camelCase JSON)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    object_name: str
    size: int = 0
    content_type: str | None = None
    url: str | None = None


class FileDownload(BaseModel):
    """A downloaded blob with the metadata the service sent along."""

    file_name: str = "download"
    content_type: str = "application/octet-stream"
    content: bytes = b""
    file_size: int = Field(default=0, ge=0)
