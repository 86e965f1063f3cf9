"""
Encrypted per-shop configuration store.

Each shop keeps its configuration (payment keys, email settings, the
storefront password, ...) as a single JSON object encrypted with Fernet and
stored in ``shops.config``. Networks keep their secrets the same way in
``networks.config``.

Usage:
    from dshop import encrypted_config

    config = await encrypted_config.dump(session, shop.id)
    password = await encrypted_config.get(session, shop.id, "password")
    await encrypted_config.assign(session, shop.id, {"hostname": "store"})
"""

import base64
import hashlib
import json
import logging
from functools import lru_cache
from typing import Any, Optional

from cryptography.fernet import Fernet, InvalidToken
from sqlalchemy.ext.asyncio import AsyncSession

from .core.config import get_settings
from .models import Shop

logger = logging.getLogger(__name__)


class ConfigDecryptionError(Exception):
    """Raised when a stored config blob cannot be decrypted with the current key."""


class ConfigCipher:
    """Encrypt and decrypt JSON config objects."""

    def __init__(self, *, key_material: bytes) -> None:
        if not key_material:
            raise ValueError("Config cipher requires non-empty key material")
        digest = hashlib.sha256(key_material).digest()
        self._fernet = Fernet(base64.urlsafe_b64encode(digest))

    @classmethod
    def from_secret(cls, secret: str | bytes) -> "ConfigCipher":
        material = secret.encode("utf-8") if isinstance(secret, str) else bytes(secret)
        return cls(key_material=material)

    def encrypt(self, config: dict[str, Any]) -> str:
        payload = json.dumps(config, sort_keys=True).encode("utf-8")
        return self._fernet.encrypt(payload).decode("utf-8")

    def decrypt(self, ciphertext: Optional[str]) -> dict[str, Any]:
        if not ciphertext:
            return {}
        try:
            plaintext = self._fernet.decrypt(ciphertext.encode("utf-8"))
        except InvalidToken as exc:
            raise ConfigDecryptionError("Invalid config ciphertext") from exc
        data = json.loads(plaintext)
        return data if isinstance(data, dict) else {}


@lru_cache
def _cipher_for(secret: str) -> ConfigCipher:
    return ConfigCipher.from_secret(secret)


def get_cipher() -> ConfigCipher:
    return _cipher_for(get_settings().encryption_key)


def encrypt_config(config: dict[str, Any]) -> str:
    return get_cipher().encrypt(config)


def decrypt_config(ciphertext: Optional[str]) -> dict[str, Any]:
    """Decrypt a stored blob (shop or network) into a dict; empty blobs give ``{}``."""
    return get_cipher().decrypt(ciphertext)


async def _load_shop(session: AsyncSession, shop_id: int) -> Shop:
    shop = await session.get(Shop, shop_id)
    if shop is None:
        raise LookupError(f"Shop {shop_id} not found")
    return shop


async def dump(session: AsyncSession, shop_id: int) -> dict[str, Any]:
    """Return the shop's whole decrypted config."""
    shop = await _load_shop(session, shop_id)
    return decrypt_config(shop.config)


async def get(session: AsyncSession, shop_id: int, key: str, default: Any = None) -> Any:
    config = await dump(session, shop_id)
    return config.get(key, default)


async def assign(session: AsyncSession, shop_id: int, values: dict[str, Any]) -> dict[str, Any]:
    """
    Merge ``values`` into the shop's config and re-encrypt it.

    The caller owns the transaction.
    """
    shop = await _load_shop(session, shop_id)
    config = decrypt_config(shop.config)
    config.update(values)
    shop.config = encrypt_config(config)
    await session.flush()
    logger.debug(f"Updated config keys {sorted(values)} for shop {shop_id}")
    return config
