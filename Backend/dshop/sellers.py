"""
Seller account helpers: password hashing and account creation.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import bcrypt
from pydantic import BaseModel, ValidationError, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Seller
from .queries import count_sellers, find_seller_by_email

logger = logging.getLogger(__name__)


# bcrypt only looks at the first 72 bytes of a password
_BCRYPT_MAX_BYTES = 72


def hash_password(plain: str) -> str:
    if not plain:
        raise ValueError("Password cannot be empty")
    hashed = bcrypt.hashpw(plain.encode("utf-8")[:_BCRYPT_MAX_BYTES], bcrypt.gensalt())
    return hashed.decode("utf-8")


def check_password(plain: Optional[str], hashed: Optional[str]) -> bool:
    if not plain or not hashed:
        return False
    try:
        return bcrypt.checkpw(
            plain.encode("utf-8")[:_BCRYPT_MAX_BYTES],
            hashed.encode("utf-8"),
        )
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


class SellerRegistration(BaseModel):
    name: str
    email: str
    password: str

    @field_validator("name", "email", "password")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


@dataclass
class SellerCreateResult:
    seller: Optional[Seller] = None
    status: int = 200
    error: Optional[str] = None


async def num_sellers(session: AsyncSession) -> int:
    return await count_sellers(session)


async def create_seller(
    session: AsyncSession,
    data: dict[str, Any],
    superuser: bool = False,
) -> SellerCreateResult:
    """
    Validate registration data and create a seller.

    Returns a result carrying either the new seller or an HTTP status and
    error message. The seller is flushed, not committed.
    """
    try:
        registration = SellerRegistration.model_validate(data or {})
    except ValidationError:
        return SellerCreateResult(status=400, error="Invalid registration")

    if await find_seller_by_email(session, registration.email):
        return SellerCreateResult(status=409, error="Registration exists")

    seller = Seller(
        name=registration.name.strip(),
        email=registration.email,
        password=hash_password(registration.password),
        superuser=superuser,
    )
    session.add(seller)
    await session.flush()
    logger.info(f"Created seller {seller.id} (superuser={superuser})")
    return SellerCreateResult(seller=seller)
