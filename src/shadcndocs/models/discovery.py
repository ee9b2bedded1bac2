from __future__ import annotations

from pydantic import BaseModel


class ComponentInfo(BaseModel):
    name: str
    category: str = "component"


class DocSections(BaseModel):
    installation: list[str] = []
    dark_mode: list[str] = []
    migration: list[str] = []
    general: list[str] = []
