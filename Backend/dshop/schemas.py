"""Response shapes for shops and networks (camelCase on the wire)."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .encrypted_config import decrypt_config
from .models import Network, Shop


class CamelModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class LoginRequest(BaseModel):
    """Body of POST /auth/login and POST /superuser/login."""
    email: str = ""
    password: str = ""


class ShopSummary(CamelModel):
    """Shop as listed by GET /auth."""
    id: int
    name: str
    auth_token: str
    hostname: Optional[str] = None
    role: Optional[str] = None


class ShopRecord(CamelModel):
    """Shop as listed on the superuser dashboard."""
    id: int
    name: str
    auth_token: str
    hostname: Optional[str] = None
    created_at: datetime
    viewable: bool = False


class NetworkRecord(CamelModel):
    network_id: int
    provider: Optional[str] = None
    ipfs: Optional[str] = None
    ipfs_api: Optional[str] = None
    marketplace_contract: Optional[str] = None
    active: bool = False


def shop_summary(shop: Shop, role: Optional[str]) -> dict[str, Any]:
    return ShopSummary.model_validate(shop).model_copy(update={"role": role}).to_json()


def shop_record(shop: Shop, viewable: bool) -> dict[str, Any]:
    return ShopRecord.model_validate(shop).model_copy(update={"viewable": viewable}).to_json()


def network_snapshot(network: Network) -> dict[str, Any]:
    """Decrypted network config overlaid with the row's own columns; the blob itself is dropped."""
    snapshot = decrypt_config(network.config)
    snapshot.update(NetworkRecord.model_validate(network).to_json())
    snapshot.pop("config", None)
    return snapshot
