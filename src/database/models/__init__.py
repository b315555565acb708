"""
Database ORM models package.
"""

from src.database.models.provisioning import (
    TemplateRecord,
    TemplateConfigurationRecord,
    RenderedInstanceRecord,
)

__all__ = ["TemplateRecord", "TemplateConfigurationRecord", "RenderedInstanceRecord"]
