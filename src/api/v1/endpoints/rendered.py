"""
Rendered instance API endpoints.

Read-only views of the render cache.
"""

from fastapi import APIRouter, Depends

from modules.provisioning.engine import ProvisioningEngine
from src.api.v1.dependencies.engine import get_provisioning_engine
from src.api.v1.models.responses import (
    RenderedInstanceListResponse,
    RenderedInstanceSummaryModel,
    RenderedInstanceResponse,
    ErrorResponse,
)

router = APIRouter(prefix="/rendered", tags=["rendered"])


@router.get(
    "/{name}",
    response_model=RenderedInstanceListResponse,
    summary="List rendered instances",
    description="Rendered instances of a template, newest first.",
    responses={404: {"model": ErrorResponse}},
)
async def list_rendered_instances(
    name: str,
    engine: ProvisioningEngine = Depends(get_provisioning_engine),
):
    instances = await engine.list_rendered_instances(name)
    return RenderedInstanceListResponse(
        template_name=name,
        total=len(instances),
        instances=[
            RenderedInstanceSummaryModel(identity_value=i.identity_value, created_at=i.created_at)
            for i in instances
        ],
    )


@router.get(
    "/{name}/{identity_value:path}",
    response_model=RenderedInstanceResponse,
    summary="Get rendered instance",
    responses={404: {"model": ErrorResponse}},
)
async def get_rendered_instance(
    name: str,
    identity_value: str,
    engine: ProvisioningEngine = Depends(get_provisioning_engine),
):
    instance = await engine.get_rendered_instance(name, identity_value)
    return RenderedInstanceResponse(
        template_name=instance.template_name,
        identity_value=instance.identity_value,
        generated_fields=instance.generated_fields,
        rendered_output=instance.rendered_output.decode("utf-8", errors="replace"),
        created_at=instance.created_at,
    )
