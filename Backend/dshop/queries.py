"""
Named query helpers for sellers, shops and networks.

Route handlers and the auth pipeline go through these functions instead of
building statements inline, so every lookup has one obvious home.

Usage:
    from dshop.queries import find_seller_by_email, find_shops_for_seller

    seller = await find_seller_by_email(session, "a@x.com")
    linked = await find_shops_for_seller(session, seller.id)
"""

from typing import Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Network, Seller, SellerShop, Shop


# ────────────────────────────────────────────────────────────────
# Sellers
# ────────────────────────────────────────────────────────────────

async def count_sellers(session: AsyncSession) -> int:
    result = await session.execute(select(func.count()).select_from(Seller))
    return result.scalar_one()


async def find_seller_by_id(session: AsyncSession, seller_id: int) -> Optional[Seller]:
    result = await session.execute(select(Seller).where(Seller.id == seller_id))
    return result.scalar_one_or_none()


async def find_seller_by_email(
    session: AsyncSession,
    email: str,
    superuser_only: bool = False,
) -> Optional[Seller]:
    """Exact-match lookup; callers decide whether to lowercase first."""
    stmt = select(Seller).where(Seller.email == email)
    if superuser_only:
        stmt = stmt.where(Seller.superuser.is_(True))
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def delete_seller(session: AsyncSession, seller_id: int) -> int:
    """Delete a seller and its shop links. Returns the number of seller rows removed."""
    await session.execute(delete(SellerShop).where(SellerShop.seller_id == seller_id))
    result = await session.execute(delete(Seller).where(Seller.id == seller_id))
    return result.rowcount or 0


# ────────────────────────────────────────────────────────────────
# Shops
# ────────────────────────────────────────────────────────────────

async def list_shops(session: AsyncSession, newest_first: bool = False) -> Sequence[Shop]:
    stmt = select(Shop)
    if newest_first:
        stmt = stmt.order_by(Shop.created_at.desc(), Shop.id.desc())
    else:
        stmt = stmt.order_by(Shop.id)
    result = await session.execute(stmt)
    return result.scalars().all()


async def find_shop_by_auth_token(session: AsyncSession, auth_token: str) -> Optional[Shop]:
    result = await session.execute(select(Shop).where(Shop.auth_token == auth_token))
    return result.scalar_one_or_none()


async def find_shops_for_seller(
    session: AsyncSession,
    seller_id: int,
) -> Sequence[tuple[Shop, str]]:
    """Shops linked to a seller through SellerShop, paired with the link's role."""
    result = await session.execute(
        select(Shop, SellerShop.role)
        .join(SellerShop, SellerShop.shop_id == Shop.id)
        .where(SellerShop.seller_id == seller_id)
        .order_by(Shop.id)
    )
    return [(shop, role) for shop, role in result.all()]


async def find_seller_shop(
    session: AsyncSession,
    seller_id: int,
    shop_id: int,
) -> Optional[SellerShop]:
    result = await session.execute(
        select(SellerShop).where(
            SellerShop.seller_id == seller_id,
            SellerShop.shop_id == shop_id,
        )
    )
    return result.scalar_one_or_none()


# ────────────────────────────────────────────────────────────────
# Networks
# ────────────────────────────────────────────────────────────────

async def list_networks(session: AsyncSession) -> Sequence[Network]:
    result = await session.execute(select(Network).order_by(Network.network_id))
    return result.scalars().all()
