"""
Provisioning engine dependency.

The engine is built once per application (see src.api.main) and kept
on app.state so tests can hand in their own.
"""

from fastapi import Request, HTTPException, status

from modules.provisioning.engine import ProvisioningEngine


async def get_provisioning_engine(request: Request) -> ProvisioningEngine:
    """
    Get the application's provisioning engine.

    Raises:
        HTTPException: If the application has not finished starting up
    """
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Provisioning engine is not initialized",
        )
    return engine
