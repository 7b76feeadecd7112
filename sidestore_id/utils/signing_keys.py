"""Review signing keypair store – generate once, persist as PEM, reload on boot.

The keypair is acquired by ``create_app()`` and kept on ``app.state`` for the
process lifetime. It is read-only after acquisition, so concurrent signers
share it without locking.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from sidestore_id.utils.logger import logger

REVIEWS_SIGNING_PUBLIC_KEY_NAME = "reviews_public_key.pem"
REVIEWS_SIGNING_PRIVATE_KEY_NAME = "reviews_private_key.pem"


class KeyStoreError(RuntimeError):
    """Signing identity could not be generated or loaded; the service must not start."""


@dataclass(frozen=True)
class SigningKeypair:
    private_key: Ed25519PrivateKey = field(repr=False)
    public_key: Ed25519PublicKey
    public_key_pem: bytes
    public_key_path: Path

    def sign(self, data: bytes) -> bytes:
        return self.private_key.sign(data)


def _private_pem(key: Ed25519PrivateKey) -> bytes:
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def _public_pem(key: Ed25519PublicKey) -> bytes:
    return key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def load_public_key(pem_data: bytes) -> Ed25519PublicKey:
    """Parse a SubjectPublicKeyInfo PEM (the downloadable ``public_key.pem``)."""
    key = serialization.load_pem_public_key(pem_data)
    if not isinstance(key, Ed25519PublicKey):
        raise TypeError("Not an Ed25519 public key")
    return key


def _generate(private_key_path: Path, public_key_path: Path) -> SigningKeypair:
    logger.info("Generating new review signing keypair...")
    private_key = Ed25519PrivateKey.generate()
    public_key = private_key.public_key()
    public_pem = _public_pem(public_key)

    public_key_path.write_bytes(public_pem)
    logger.info(f"Public key written to {public_key_path}")

    private_key_path.write_bytes(_private_pem(private_key))
    os.chmod(private_key_path, 0o600)
    logger.info(f"Private key written to {private_key_path}")

    return SigningKeypair(private_key, public_key, public_pem, public_key_path)


def _load(private_key_path: Path, public_key_path: Path) -> SigningKeypair:
    logger.info("Loading existing review signing keypair...")
    private_key = serialization.load_pem_private_key(private_key_path.read_bytes(), password=None)
    if not isinstance(private_key, Ed25519PrivateKey):
        raise TypeError("Not an Ed25519 private key")

    # The on-disk public key is what clients download, so it must match what we sign with.
    public_pem = public_key_path.read_bytes()
    public_key = load_public_key(public_pem)
    if _public_pem(public_key) != _public_pem(private_key.public_key()):
        raise ValueError(f"{public_key_path} does not match {private_key_path}")

    return SigningKeypair(private_key, public_key, public_pem, public_key_path)


def acquire_signing_key(storage_path: str | os.PathLike[str]) -> SigningKeypair:
    """Load the keypair from ``storage_path`` or create it when either file is missing."""
    storage = Path(storage_path)
    private_key_path = storage / REVIEWS_SIGNING_PRIVATE_KEY_NAME
    public_key_path = storage / REVIEWS_SIGNING_PUBLIC_KEY_NAME

    try:
        if private_key_path.exists() and public_key_path.exists():
            keypair = _load(private_key_path, public_key_path)
            logger.info("Existing review signing keypair loaded from disk")
        else:
            storage.mkdir(parents=True, exist_ok=True)
            keypair = _generate(private_key_path, public_key_path)
            logger.info("New review signing keypair generated and written to disk")
    except (OSError, ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise KeyStoreError(f"Failed to acquire review signing key in {storage}: {exc}") from exc

    return keypair
