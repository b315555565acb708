"""
Core components of the provisioning module.
"""

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

from modules.provisioning.core.exceptions import (
    ProvisioningException,
    TemplateNotFoundException,
    RenderedInstanceNotFoundException,
    ValidationException,
    TemplateValidationException,
    ConfigurationException,
    RenderException,
    PersistenceException,
)

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
    # Exceptions
    "ProvisioningException",
    "TemplateNotFoundException",
    "RenderedInstanceNotFoundException",
    "ValidationException",
    "TemplateValidationException",
    "ConfigurationException",
    "RenderException",
    "PersistenceException",
]
