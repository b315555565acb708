"""
Alphanumeric secret generator.
"""

import secrets
import string

from modules.provisioning.core.exceptions import ConfigurationException

ALPHABET = string.ascii_letters + string.digits


def generate_alphanumeric(length: int) -> str:
    """
    Draw `length` characters uniformly from [A-Za-z0-9] using the OS CSPRNG.

    Raises:
        ConfigurationException: If length is not positive
    """
    if length <= 0:
        raise ConfigurationException(f"Alphanumeric length must be positive, got {length}")
    return "".join(secrets.choice(ALPHABET) for _ in range(length))
