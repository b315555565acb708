"""
One-way transforms applied to generated values before they are stored.

Outputs are modular-crypt strings ($6$ for SHA-512 crypt, $y$ for
yescrypt) so rendered artifacts can drop them straight into shadow
files or cloud-init user definitions.
"""

import secrets
from typing import Optional

from passlib.hash import sha512_crypt
from pyescrypt import Mode, Yescrypt

from modules.provisioning.config import ProvisioningConfig, get_provisioning_config
from modules.provisioning.core.interfaces import HashingAlgorithm


def hash_sha512(plaintext: str, rounds: int = 5000) -> str:
    """SHA-512 crypt with a random salt."""
    return sha512_crypt.using(rounds=rounds).hash(plaintext)


def hash_yescrypt(plaintext: str, n: int = 2 ** 12, r: int = 32, p: int = 1) -> str:
    """Yescrypt in modular crypt format with a fresh 16-byte salt."""
    hasher = Yescrypt(n=n, r=r, p=p, mode=Mode.MCF)
    digest = hasher.digest(plaintext.encode("utf-8"), salt=secrets.token_bytes(16))
    return digest.decode("ascii")


def apply(
    algorithm: HashingAlgorithm,
    plaintext: str,
    config: Optional[ProvisioningConfig] = None
) -> str:
    """
    Transform a plaintext value into its stored form.

    NONE is the identity; the other algorithms are irreversible and
    salted, so two calls never return the same string.
    """
    config = config or get_provisioning_config()

    if algorithm is HashingAlgorithm.NONE:
        return plaintext
    if algorithm is HashingAlgorithm.SHA512:
        return hash_sha512(plaintext, rounds=config.sha512_rounds)
    if algorithm is HashingAlgorithm.YESCRYPT:
        return hash_yescrypt(
            plaintext,
            n=config.yescrypt_n,
            r=config.yescrypt_r,
            p=config.yescrypt_p,
        )
    raise AssertionError(f"Unhandled hashing algorithm: {algorithm}")
