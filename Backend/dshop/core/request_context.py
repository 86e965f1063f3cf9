"""
Request Context Resolution Module

Every route that cares about who is calling goes through this module.

ARCHITECTURE:
    1. get_request_context() reads the session cookie ONCE into a RequestContext
    2. The capability checks below run in a fixed order and fill the context:
         resolve_seller        -> ctx.seller          (session sellerId)
         resolve_shop          -> ctx.shop            (Authorization: Bearer <authToken>)
         resolve_seller_shop   -> ctx.seller_shop     (SellerShop link, skipped for superusers)
         check_role            -> role gate
    3. A failed check raises AuthenticationError / AuthorizationError, which the
       app renders as {"success": false, "message": ...}
    4. Handlers only ever read identity from the context they were given

The FastAPI dependencies at the bottom compose these checks the way routes
need them (shop only, seller and shop, seller and shop with a role).
"""

import logging
from dataclasses import dataclass
from typing import Any, MutableMapping, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from .db import get_session
from ..models import Seller, SellerShop, Shop, ShopRole
from ..queries import find_seller_by_id, find_seller_shop, find_shop_by_auth_token

logger = logging.getLogger(__name__)

SESSION_SELLER_KEY = "sellerId"
SESSION_AUTHED_SHOP_KEY = "authedShop"


class AuthenticationError(Exception):
    """Raised when the caller cannot be identified (no session, unknown shop)."""
    def __init__(self, message: str, status_code: int = 401):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class AuthorizationError(Exception):
    """Raised when an identified caller lacks access to a shop."""
    def __init__(self, message: str, shop_id: Optional[int] = None, status_code: int = 403):
        self.message = message
        self.shop_id = shop_id
        self.status_code = status_code
        super().__init__(message)


@dataclass
class RequestContext:
    """
    Per-request view of the session plus whatever the auth checks resolved.

    seller_id / authed_shop are copied out of the session when the context is
    built; writes go through log_in / unlock_shop / clear so the session and
    the context never disagree.
    """
    session: MutableMapping[str, Any]
    seller_id: Optional[int] = None
    authed_shop: Optional[int] = None
    shop_token: Optional[str] = None

    seller: Optional[Seller] = None
    shop: Optional[Shop] = None
    seller_shop: Optional[SellerShop] = None

    @property
    def is_logged_in(self) -> bool:
        return self.seller_id is not None

    @property
    def role(self) -> Optional[str]:
        """Role on ctx.shop: admin for superusers, else the SellerShop role."""
        if self.seller is not None and self.seller.superuser:
            return ShopRole.ADMIN.value
        if self.seller_shop is not None:
            return self.seller_shop.role
        return None

    def log_in(self, seller: Seller) -> None:
        self.session[SESSION_SELLER_KEY] = seller.id
        self.seller_id = seller.id
        self.seller = seller

    def unlock_shop(self, shop_id: int) -> None:
        self.session[SESSION_AUTHED_SHOP_KEY] = shop_id
        self.authed_shop = shop_id

    def clear(self) -> None:
        self.session.clear()
        self.seller_id = None
        self.authed_shop = None
        self.seller = None
        self.seller_shop = None


def read_shop_token(request: Request) -> Optional[str]:
    """Extract the shop auth token from ``Authorization: Bearer <token>``."""
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        return None
    return token


def build_request_context(request: Request) -> RequestContext:
    session = request.session
    seller_id = session.get(SESSION_SELLER_KEY)
    authed_shop = session.get(SESSION_AUTHED_SHOP_KEY)
    return RequestContext(
        session=session,
        seller_id=int(seller_id) if seller_id is not None else None,
        authed_shop=int(authed_shop) if authed_shop is not None else None,
        shop_token=read_shop_token(request),
    )


# ────────────────────────────────────────────────────────────────
# Capability checks (run in this order)
# ────────────────────────────────────────────────────────────────

async def resolve_seller(ctx: RequestContext, db: AsyncSession) -> Seller:
    if ctx.seller is not None:
        return ctx.seller
    if ctx.seller_id is None:
        raise AuthenticationError("Not logged in")

    seller = await find_seller_by_id(db, ctx.seller_id)
    if seller is None:
        # Session outlived the seller row
        logger.warning(f"Session references missing seller {ctx.seller_id}")
        raise AuthenticationError("Not logged in")

    ctx.seller = seller
    return seller


async def resolve_shop(ctx: RequestContext, db: AsyncSession) -> Shop:
    if ctx.shop is not None:
        return ctx.shop
    if not ctx.shop_token:
        raise AuthenticationError("No authorization")

    shop = await find_shop_by_auth_token(db, ctx.shop_token)
    if shop is None:
        logger.warning("Shop lookup failed for presented auth token")
        raise AuthenticationError("Shop not found")

    ctx.shop = shop
    return shop


async def resolve_seller_shop(ctx: RequestContext, db: AsyncSession) -> Optional[SellerShop]:
    """Attach the seller's link to ctx.shop. Superusers need none."""
    seller = ctx.seller
    shop = ctx.shop
    if seller is None or shop is None:
        raise RuntimeError("resolve_seller and resolve_shop must run first")
    if seller.superuser:
        return None

    seller_shop = await find_seller_shop(db, seller.id, shop.id)
    if seller_shop is None:
        logger.warning(
            f"Authorization failed: Seller {seller.id} is not linked to shop {shop.id}"
        )
        raise AuthorizationError("Unauthorized", shop_id=shop.id)

    ctx.seller_shop = seller_shop
    logger.debug(f"Seller {seller.id} has role {seller_shop.role} in shop {shop.id}")
    return seller_shop


def check_role(ctx: RequestContext, role: ShopRole | str) -> str:
    required = role.value if isinstance(role, ShopRole) else role
    actual = ctx.role
    if actual != required:
        shop_id = ctx.shop.id if ctx.shop is not None else None
        logger.warning(
            f"Authorization failed: Seller {ctx.seller_id} has role {actual!r}, "
            f"needs {required!r} for shop {shop_id}"
        )
        raise AuthorizationError("Unauthorized", shop_id=shop_id)
    return actual


async def authorize_seller_and_shop(
    ctx: RequestContext,
    db: AsyncSession,
    shop_required: bool = True,
) -> RequestContext:
    """
    Seller, then shop, then the seller's link to that shop.

    With shop_required=False a request that names no shop stops after the
    seller check; a request that names one still has to pass the rest.
    """
    await resolve_seller(ctx, db)
    if not shop_required and not ctx.shop_token:
        return ctx
    await resolve_shop(ctx, db)
    await resolve_seller_shop(ctx, db)
    return ctx


# ────────────────────────────────────────────────────────────────
# FastAPI dependencies
# ────────────────────────────────────────────────────────────────

async def get_request_context(request: Request) -> RequestContext:
    """
    Session-only context; nothing is looked up.

        @router.post("/auth/logout")
        async def logout(ctx: RequestContext = Depends(get_request_context)):
            ...
    """
    return build_request_context(request)


async def get_shop_context(
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_session),
) -> RequestContext:
    """Requires a known shop token; seller identity is not checked."""
    await resolve_shop(ctx, db)
    return ctx


async def get_seller_and_shop_context(
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_session),
) -> RequestContext:
    return await authorize_seller_and_shop(ctx, db)


def require_role(role: ShopRole | str):
    """
    Dependency factory: seller and shop checks plus a role gate.

        @router.get("/config")
        async def read_config(ctx: RequestContext = Depends(require_role(ShopRole.ADMIN))):
            ...
    """
    async def dependency(
        ctx: RequestContext = Depends(get_seller_and_shop_context),
    ) -> RequestContext:
        check_role(ctx, role)
        return ctx

    return dependency
