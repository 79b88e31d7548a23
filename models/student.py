"""Datenmodell für Schüler (Pydantic v2)."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class Student(BaseModel):
    """Ein Schüler. Nur aktive Schüler dürfen zugeordnet werden."""

    id: str
    name: str
    email: str = ""
    is_active: bool = True
    grade: Optional[str] = None           # "Stammgruppe" laut Benutzerprofil
    parent_ids: list[str] = []
    created_at: Optional[datetime] = None
