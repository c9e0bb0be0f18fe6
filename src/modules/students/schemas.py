"""Pydantic schemas for the student directory."""

from src.shared.schemas.base import BaseSchema


class SchoolClassResponse(BaseSchema):
    id: int
    name: str
    section: str | None = None
    display_name: str
