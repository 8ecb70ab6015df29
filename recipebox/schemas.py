"""Pydantic schemas for the RecipeBox JSON API."""

from typing import Optional

from pydantic import BaseModel, ConfigDict


class RecipeOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    time: str
    image_path: Optional[str] = None
    user_id: int


class ReadyOut(BaseModel):
    ok: bool
    db_ok: bool
