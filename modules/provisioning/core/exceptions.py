"""
Custom exceptions for provisioning module.
"""


class ProvisioningException(Exception):
    """Base exception for provisioning module."""
    pass


class TemplateNotFoundException(ProvisioningException):
    """Exception raised when template not found."""
    pass


class RenderedInstanceNotFoundException(ProvisioningException):
    """Exception raised when no rendered instance exists for a template/identity pair."""
    pass


class ValidationException(ProvisioningException):
    """Exception raised when a configuration or default values are rejected."""
    pass


class TemplateValidationException(ValidationException):
    """Exception raised when template source fails to parse."""
    pass


class ConfigurationException(ProvisioningException):
    """Exception raised when a value generator is misconfigured."""
    pass


class RenderException(ProvisioningException):
    """Exception raised when template execution fails."""
    pass


class PersistenceException(ProvisioningException):
    """Exception raised by the persistence backend."""
    pass
