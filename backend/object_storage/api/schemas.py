"""Pydantic response schemas."""
from pydantic import BaseModel, ConfigDict, Field


class FloorplanResponse(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)
    id: str
    other_fields: str = Field(default="probablyGoHere", alias="otherFields")
    image_signed_url: str = Field(alias="imageSignedUrl")
