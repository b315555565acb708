"""
API v1 router.

Combines all v1 endpoint routers.
"""

from fastapi import APIRouter

from src.api.v1.endpoints import templates, configuration, rendered

# Create main v1 router
api_router = APIRouter()

# V1 root endpoint
@api_router.get("/", tags=["info"])
async def api_v1_info():
    """
    API v1 information endpoint.

    Returns:
        API version and available endpoints
    """
    return {
        "title": "Template Provisioning API",
        "version": "1.0.0",
        "endpoints": {
            "template": "/api/v1/template/{name}",
            "values": "/api/v1/template/{name}/values",
            "config": "/api/v1/config/{name}",
            "rendered": "/api/v1/rendered/{name}",
            "health": "/health",
            "docs": "/docs"
        }
    }

# Include endpoint routers
api_router.include_router(templates.router)
api_router.include_router(configuration.router)
api_router.include_router(rendered.router)
