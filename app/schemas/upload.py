"""Schemas for images stored on the media host."""

from pydantic import BaseModel, Field


class MediaUploadResult(BaseModel):
    """Subset of the media host's upload response that the app keeps."""

    url: str = Field(..., description="HTTPS URL of the stored image.")
    public_id: str = Field(default="", description="Media host identifier of the asset.")
    size_bytes: int | None = Field(default=None, ge=0, description="Stored size in bytes.")
    width: int | None = Field(default=None, ge=0)
    height: int | None = Field(default=None, ge=0)
