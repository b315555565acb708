"""
Configuration API endpoints.
"""

from typing import Dict, Any

from fastapi import APIRouter, Body, Depends

from modules.provisioning.core.interfaces import TemplateConfiguration
from modules.provisioning.engine import ProvisioningEngine
from src.api.v1.dependencies.engine import get_provisioning_engine
from src.api.v1.models.responses import ConfigurationResponse, ConfigurationModel, ErrorResponse

router = APIRouter(prefix="/config", tags=["configuration"])


def _to_response(name: str, configuration: TemplateConfiguration) -> ConfigurationResponse:
    return ConfigurationResponse(
        template_name=name,
        configuration=ConfigurationModel(**configuration.to_dict()),
    )


@router.get(
    "/{name}",
    response_model=ConfigurationResponse,
    summary="Get configuration",
    responses={404: {"model": ErrorResponse}},
)
async def get_configuration(
    name: str,
    engine: ProvisioningEngine = Depends(get_provisioning_engine),
):
    configuration = await engine.get_configuration(name)
    return _to_response(name, configuration)


@router.put(
    "/{name}",
    response_model=ConfigurationResponse,
    summary="Set configuration",
    description="Validate and replace a template configuration. Stored default values "
                "are kept when the body has no default_values. Already rendered "
                "instances are not invalidated.",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def set_configuration(
    name: str,
    configuration: Dict[str, Any] = Body(..., description="Configuration in the ConfigurationModel shape"),
    engine: ProvisioningEngine = Depends(get_provisioning_engine),
):
    stored = await engine.set_configuration(name, configuration)
    return _to_response(name, stored)
