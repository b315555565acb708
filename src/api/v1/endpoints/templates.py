"""
Template API endpoints.

Handles template upload, rendering, deletion and default values.
"""

import json

from fastapi import APIRouter, UploadFile, File, Depends, Request, status
from fastapi.responses import Response

from modules.provisioning.engine import ProvisioningEngine
from src.api.v1.dependencies.engine import get_provisioning_engine
from src.api.v1.dependencies.upload import ensure_upload_size
from src.api.v1.models.responses import TemplateResponse, MessageResponse, ErrorResponse
from shared.utils.logger import setup_logger

logger = setup_logger(__name__)
router = APIRouter(prefix="/template", tags=["templates"])

GENERATED_VALUES_HEADER = "X-Generated-Values"
CACHE_HEADER = "X-Cache"


@router.post(
    "/{name}",
    response_model=TemplateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload template",
    description="Create or replace a template from a multipart file upload. "
                "The configuration of an existing template is kept.",
    responses={400: {"model": ErrorResponse}, 413: {"model": ErrorResponse}},
)
async def upload_template(
    name: str,
    file: UploadFile = File(..., description="Template source file"),
    engine: ProvisioningEngine = Depends(get_provisioning_engine),
):
    content = ensure_upload_size(await file.read(), "Template")
    template = await engine.upload_template(name, content)

    return TemplateResponse(
        name=template.name,
        size=len(template.source),
        created_at=template.created_at,
        updated_at=template.updated_at,
    )


@router.get(
    "/{name}",
    response_class=Response,
    summary="Render template",
    description="Render a template with the query parameters. When the configured "
                "id_field is present the output is generated once and cached; the "
                "plaintext of generated values is returned in the X-Generated-Values "
                "header on that first response only.",
    responses={
        200: {"content": {"text/plain": {}}},
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
async def render_template(
    name: str,
    request: Request,
    engine: ProvisioningEngine = Depends(get_provisioning_engine),
):
    result = await engine.render_template(name, dict(request.query_params))

    headers = {CACHE_HEADER: "HIT" if result.cached else "MISS"}
    if result.disclosed_values:
        headers[GENERATED_VALUES_HEADER] = json.dumps(result.disclosed_values)

    return Response(
        content=result.output,
        media_type="text/plain; charset=utf-8",
        headers=headers,
    )


@router.delete(
    "/{name}",
    response_model=MessageResponse,
    summary="Delete template",
    description="Delete a template together with its configuration and all rendered instances.",
    responses={404: {"model": ErrorResponse}},
)
async def delete_template(
    name: str,
    engine: ProvisioningEngine = Depends(get_provisioning_engine),
):
    await engine.delete_template(name)
    return MessageResponse(message=f"Template {name} deleted")


@router.put(
    "/{name}/values",
    response_model=MessageResponse,
    summary="Set default values",
    description="Replace the default values of a template from a raw YAML or JSON mapping body.",
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def set_default_values(
    name: str,
    request: Request,
    engine: ProvisioningEngine = Depends(get_provisioning_engine),
):
    body = ensure_upload_size(await request.body(), "Default values")
    values = engine.parse_default_values(body)
    await engine.set_default_values(name, values)
    return MessageResponse(message=f"Set {len(values)} default values for {name}")
