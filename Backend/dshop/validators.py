"""
Validation for shop config writes (POST /config).

Only known keys with the right types are accepted; anything else rejects the
whole payload.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel


class OfflinePaymentMethod(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    id: str
    label: str
    details: Optional[str] = None
    disabled: bool = False


class ShopConfig(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    hostname: Optional[str] = None
    password: Optional[str] = None
    email: Optional[str] = None
    email_subject: Optional[str] = None
    data_url: Optional[str] = None
    public_url: Optional[str] = None
    listing_id: Optional[str] = None
    web3_pk: Optional[str] = None
    pgp_public_key: Optional[str] = None
    pgp_private_key: Optional[str] = None
    pgp_private_key_pass: Optional[str] = None
    printful: Optional[str] = None
    stripe_backend: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    paypal_client_id: Optional[str] = None
    paypal_client_secret: Optional[str] = None
    uphold_api: Optional[str] = None
    uphold_client: Optional[str] = None
    uphold_secret: Optional[str] = None
    sendgrid_api_key: Optional[str] = None
    mailgun_smtp_server: Optional[str] = None
    mailgun_smtp_port: Optional[int] = None
    mailgun_smtp_login: Optional[str] = None
    mailgun_smtp_password: Optional[str] = None
    delivery_api: Optional[bool] = None
    use_escrow: Optional[bool] = None
    offline_payment_methods: Optional[list[OfflinePaymentMethod]] = None


def validate_config(data: Any) -> Optional[dict[str, Any]]:
    """Return the submitted fields in wire (camelCase) form, or None when invalid."""
    if not isinstance(data, dict):
        return None
    try:
        config = ShopConfig.model_validate(data)
    except ValidationError:
        return None
    return config.model_dump(mode="json", by_alias=True, exclude_unset=True)
