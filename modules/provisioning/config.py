"""
Provisioning module configuration.

Centralizes generator and hashing settings for standalone usage.
"""

from pathlib import Path
from typing import Optional
from dataclasses import dataclass


DEFAULT_WORDLIST_PATH = Path(__file__).parent / "generators" / "assets" / "wordlist.txt"


@dataclass
class ProvisioningConfig:
    """
    Configuration for provisioning module.
    """

    # Passphrase generation
    wordlist_path: Optional[Path] = None
    passphrase_delimiter: str = "-"

    # SHA-512 crypt rounds (5000 is the implicit glibc default)
    sha512_rounds: int = 5000

    # Yescrypt cost parameters
    yescrypt_n: int = 2 ** 12
    yescrypt_r: int = 32
    yescrypt_p: int = 1

    # Create tables on startup instead of running migrations
    auto_create_tables: bool = True

    def __post_init__(self):
        """Initialize default paths if not provided."""
        if self.wordlist_path is None:
            self.wordlist_path = DEFAULT_WORDLIST_PATH
        self.wordlist_path = Path(self.wordlist_path)


# Global configuration instance
_config_instance: Optional[ProvisioningConfig] = None


def get_provisioning_config() -> ProvisioningConfig:
    """
    Get global provisioning config instance.

    Returns:
        ProvisioningConfig instance
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = ProvisioningConfig()
    return _config_instance


def set_provisioning_config(config: ProvisioningConfig) -> None:
    """
    Set global provisioning config instance.

    Args:
        config: ProvisioningConfig instance
    """
    global _config_instance
    _config_instance = config
