"""
Shared fixtures for provisioning tests.
"""

import pytest
import pytest_asyncio

from modules.provisioning.config import ProvisioningConfig
from modules.provisioning.engine import ProvisioningEngine
from modules.provisioning.storage import InMemoryTemplateStore, SqlTemplateStore
from src.database.connection import create_engine_for_url, create_session_maker, create_tables


@pytest.fixture
def provisioning_config() -> ProvisioningConfig:
    # Low yescrypt cost
    return ProvisioningConfig(yescrypt_n=2 ** 10, yescrypt_r=8, yescrypt_p=1)


@pytest_asyncio.fixture(params=["memory", "sql"])
async def store(request, tmp_path):
    """Every store implementation in turn."""
    if request.param == "memory":
        yield InMemoryTemplateStore()
        return

    db_engine = create_engine_for_url(f"sqlite+aiosqlite:///{tmp_path / 'provisioning.db'}")
    await create_tables(db_engine)
    yield SqlTemplateStore(create_session_maker(db_engine))
    await db_engine.dispose()


@pytest.fixture
def engine(store, provisioning_config) -> ProvisioningEngine:
    return ProvisioningEngine(store, config=provisioning_config)
