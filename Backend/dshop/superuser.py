"""
Superuser dashboard endpoints.

GET /superuser/auth walks a fixed chain of preconditions and stops at the
first one that fails, reporting it as ``reason``:

    no-users -> not-logged-in -> no-such-user -> not-superuser
             -> no-active-network -> no-shops -> success
"""

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from .core.config import get_settings
from .core.db import get_session
from .core.request_context import RequestContext, get_request_context
from .core.responses import Reasons, failure_response, success_response
from .queries import (
    count_sellers,
    find_seller_by_email,
    find_seller_by_id,
    list_networks,
    list_shops,
)
from .schemas import LoginRequest, network_snapshot, shop_record
from .sellers import check_password
from .shop_data import find_local_shops, has_shop_config

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/superuser", tags=["superuser"])


@router.get("/auth")
async def superuser_status(
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_session),
):
    if not await count_sellers(db):
        return failure_response(reason=Reasons.NO_USERS)

    if not ctx.is_logged_in:
        return failure_response(reason=Reasons.NOT_LOGGED_IN)

    user = await find_seller_by_id(db, ctx.seller_id)
    if user is None:
        return failure_response(reason=Reasons.NO_SUCH_USER)
    if not user.superuser:
        return failure_response(reason=Reasons.NOT_SUPERUSER)

    networks = [network_snapshot(n) for n in await list_networks(db)]
    # First active network wins if several are flagged
    network = next((n for n in networks if n.get("active")), None)
    if network is None:
        return failure_response(reason=Reasons.NO_ACTIVE_NETWORK, networks=networks)

    cache_dir = Path(get_settings().dshop_cache)
    shops = await list_shops(db, newest_first=True)
    records = [shop_record(shop, has_shop_config(cache_dir, shop.auth_token)) for shop in shops]
    local_shops = find_local_shops(cache_dir, (shop.auth_token for shop in shops))

    if not records:
        return failure_response(
            reason=Reasons.NO_SHOPS,
            networks=networks,
            network=network,
            localShops=local_shops,
        )

    return success_response(
        email=user.email,
        networks=networks,
        network=network,
        shops=records,
        localShops=local_shops,
    )


@router.post("/login")
async def superuser_login(
    body: LoginRequest,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_session),
):
    email = body.email.lower()
    seller = await find_seller_by_email(db, email, superuser_only=True)
    if seller is None:
        return failure_response(status.HTTP_404_NOT_FOUND, reason=Reasons.NO_SUCH_USER)

    if not check_password(body.password, seller.password):
        logger.info(f"Superuser login rejected for seller {seller.id}: incorrect password")
        return failure_response(reason=Reasons.INCORRECT_PASS)

    ctx.log_in(seller)
    logger.info(f"Superuser {seller.id} logged in")
    return success_response(email=seller.email, role="superuser")
