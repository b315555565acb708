"""
API response models.

Pydantic models for API responses.
"""

from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone
from enum import Enum


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ResponseStatus(str, Enum):
    """Response status values."""
    SUCCESS = "success"
    ERROR = "error"


class ErrorResponse(BaseModel):
    """
    Standard error response.
    """

    status: ResponseStatus = Field(default=ResponseStatus.ERROR)
    error: str = Field(..., description="Error code")
    message: str = Field(..., description="Human-readable error message")
    detail: Optional[str] = Field(default=None, description="Detailed error information")
    timestamp: datetime = Field(default_factory=_utcnow)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "error",
                "error": "template_not_found",
                "message": "Template not found: cloud-init",
                "detail": None,
                "timestamp": "2026-01-20T10:30:00Z"
            }
        }
    )


class MessageResponse(BaseModel):
    """Acknowledgement for mutations without a body."""

    status: ResponseStatus = Field(default=ResponseStatus.SUCCESS)
    message: str


class TemplateResponse(BaseModel):
    """
    Stored template metadata.
    """

    status: ResponseStatus = Field(default=ResponseStatus.SUCCESS)
    name: str = Field(..., description="Template name")
    size: int = Field(..., description="Template source length in characters")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last replacement timestamp")


class DynamicFieldModel(BaseModel):
    """Dynamic field as exposed over the API."""

    field_name: str
    type: str = Field(..., description="alphanumeric or passphrase")
    length: int = Field(..., description="Characters (alphanumeric) or words (passphrase)")
    hashing_algorithm: Optional[str] = Field(default=None, description="Per-field override")


class ConfigurationModel(BaseModel):
    """Template configuration as exposed over the API."""

    id_field: str = Field(..., description="Request parameter used as cache key; empty disables caching")
    dynamic_fields: List[DynamicFieldModel] = Field(default_factory=list)
    hashing_algorithm: str = Field(default="none", description="none, sha512 or yescrypt")
    default_values: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id_field": "mac_address",
                "dynamic_fields": [
                    {"field_name": "root_password", "type": "passphrase", "length": 4},
                    {"field_name": "token", "type": "alphanumeric", "length": 32},
                ],
                "hashing_algorithm": "sha512",
                "default_values": {"domain": "lab.example.com"}
            }
        }
    )


class ConfigurationResponse(BaseModel):
    """Configuration lookup/update response."""

    status: ResponseStatus = Field(default=ResponseStatus.SUCCESS)
    template_name: str
    configuration: ConfigurationModel


class RenderedInstanceSummaryModel(BaseModel):
    """Listing entry for a rendered instance."""

    identity_value: str
    created_at: datetime


class RenderedInstanceListResponse(BaseModel):
    """Rendered instances of a template, newest first."""

    status: ResponseStatus = Field(default=ResponseStatus.SUCCESS)
    template_name: str
    total: int
    instances: List[RenderedInstanceSummaryModel] = Field(default_factory=list)


class RenderedInstanceResponse(BaseModel):
    """
    A stored rendered instance.

    generated_fields holds the stored form only (hashes when hashing is on).
    """

    status: ResponseStatus = Field(default=ResponseStatus.SUCCESS)
    template_name: str
    identity_value: str
    generated_fields: Dict[str, str] = Field(default_factory=dict)
    rendered_output: str
    created_at: datetime


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    environment: str
    database: bool
    store_type: str
    cache: Dict[str, Any] = Field(default_factory=dict)
