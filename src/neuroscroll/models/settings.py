# neuroscroll/models/settings.py
from __future__ import annotations

from pydantic import Field

from neuroscroll.base_models import CamelModel
from neuroscroll.config import DEFAULT_RETENTION_DAYS
from neuroscroll.models.enums import ExportFormat


class UserSettings(CamelModel):
    """User preferences persisted alongside sessions."""

    enable_ai: bool = True
    enable_gemini_insights: bool = False
    data_retention_days: int = Field(default=DEFAULT_RETENTION_DAYS, ge=1)
    export_format: ExportFormat = ExportFormat.CSV
    accessibility_mode: bool = False
    service_enabled: bool = True
