"""
Dynamic field value generators.
"""

from typing import Optional

from modules.provisioning.config import ProvisioningConfig, get_provisioning_config
from modules.provisioning.core.interfaces import DynamicFieldSpec, GeneratorKind
from modules.provisioning.generators.alphanumeric import generate_alphanumeric
from modules.provisioning.generators.passphrase import generate_passphrase, load_wordlist


def generate(spec: DynamicFieldSpec, config: Optional[ProvisioningConfig] = None) -> str:
    """
    Generate a fresh value for a dynamic field.

    Raises:
        ConfigurationException: If the field cannot be generated
    """
    config = config or get_provisioning_config()

    if spec.kind is GeneratorKind.ALPHANUMERIC:
        return generate_alphanumeric(spec.length)
    if spec.kind is GeneratorKind.PASSPHRASE:
        return generate_passphrase(spec.length, config.wordlist_path, config.passphrase_delimiter)
    raise AssertionError(f"Unhandled generator kind: {spec.kind}")


__all__ = [
    "generate",
    "generate_alphanumeric",
    "generate_passphrase",
    "load_wordlist",
]
