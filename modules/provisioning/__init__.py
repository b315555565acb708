"""
Provisioning Module

Renders provisioning artifacts from templates, generating per-identity
secrets once and serving the cached result afterwards.
"""

__version__ = "1.0.0"

from modules.provisioning.core.interfaces import (
    HashingAlgorithm,
    GeneratorKind,
    DynamicFieldSpec,
    TemplateConfiguration,
    Template,
    RenderedInstance,
    RenderedInstanceSummary,
    RenderResult,
    ITemplateExecutor,
)

# Export configuration
from modules.provisioning.config import (
    ProvisioningConfig,
    get_provisioning_config,
    set_provisioning_config,
)

# Export storage
from modules.provisioning.storage import (
    ITemplateStore,
    InMemoryTemplateStore,
    SqlTemplateStore,
)

from modules.provisioning.templating import JinjaTemplateExecutor
from modules.provisioning.cache import KeyedLock, RenderCache
from modules.provisioning.engine import ProvisioningEngine

__all__ = [
    # Types
    "HashingAlgorithm",
    "GeneratorKind",
    "DynamicFieldSpec",
    "TemplateConfiguration",
    "Template",
    "RenderedInstance",
    "RenderedInstanceSummary",
    "RenderResult",
    "ITemplateExecutor",
    # Configuration
    "ProvisioningConfig",
    "get_provisioning_config",
    "set_provisioning_config",
    # Storage
    "ITemplateStore",
    "InMemoryTemplateStore",
    "SqlTemplateStore",
    # Engine
    "JinjaTemplateExecutor",
    "KeyedLock",
    "RenderCache",
    "ProvisioningEngine",
]
