from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Todo(BaseModel):
    """A todo item as returned by the backend; `_id` on the wire."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    id: str = Field(..., alias="_id", description="Server-assigned identifier")
    title: str
    description: str
