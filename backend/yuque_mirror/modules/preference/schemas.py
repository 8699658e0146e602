"""Pydantic schemas for user preferences."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from ...infrastructure.config.settings import settings


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


class AppPreferences(BaseModel):
    """Effective preferences, with defaults from the application settings."""

    sync_directory: str = Field(default_factory=lambda: settings.SYNC_DIRECTORY, description="Root of the mirror tree")
    linebreak: bool = Field(default_factory=lambda: settings.DEFAULT_LINEBREAK, description="Keep soft line breaks on export")
    latexcode: bool = Field(default_factory=lambda: settings.DEFAULT_LATEXCODE, description="Export formulas as LaTeX")
    theme: Theme = Theme.SYSTEM
    auto_sync_interval: int = Field(default=0, ge=0, description="Minutes between automatic syncs, 0 disables")


class PreferencesUpdate(BaseModel):
    """Partial preference update; omitted fields keep their stored value."""

    sync_directory: Optional[str] = Field(default=None, min_length=1)
    linebreak: Optional[bool] = None
    latexcode: Optional[bool] = None
    theme: Optional[Theme] = None
    auto_sync_interval: Optional[int] = Field(default=None, ge=0)
