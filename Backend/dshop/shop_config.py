"""
Per-shop configuration and the storefront password gate.

/config is for shop admins (superusers included). /password only needs the
shop token: the storefront password is shared by everyone who knows it and is
remembered per browser session, not per seller.
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from . import encrypted_config
from .core.db import get_session
from .core.request_context import RequestContext, get_shop_context, require_role
from .core.responses import failure_response, success_response
from .models import ShopRole
from .validators import validate_config

logger = logging.getLogger(__name__)

router = APIRouter(tags=["shop-config"])


@router.get("/config")
async def read_config(
    ctx: RequestContext = Depends(require_role(ShopRole.ADMIN)),
    db: AsyncSession = Depends(get_session),
):
    config = await encrypted_config.dump(db, ctx.shop.id)
    return success_response(config={**config, "hostname": ctx.shop.hostname})


@router.post("/config")
async def write_config(
    payload: Any = Body(default=None),
    ctx: RequestContext = Depends(require_role(ShopRole.ADMIN)),
    db: AsyncSession = Depends(get_session),
):
    config = validate_config(payload)
    if config is None:
        return failure_response(status.HTTP_400_BAD_REQUEST, message="Invalid config data")

    await encrypted_config.assign(db, ctx.shop.id, config)
    await db.commit()
    logger.info(f"Seller {ctx.seller_id} updated config keys {sorted(config)} for shop {ctx.shop.id}")
    return success_response()


@router.get("/password")
async def check_shop_password(
    ctx: RequestContext = Depends(get_shop_context),
    db: AsyncSession = Depends(get_session),
):
    password = await encrypted_config.get(db, ctx.shop.id, "password")
    if not password or ctx.authed_shop == ctx.shop.id:
        return success_response()
    return failure_response()


@router.post("/password")
async def unlock_shop(
    payload: Any = Body(default=None),
    ctx: RequestContext = Depends(get_shop_context),
    db: AsyncSession = Depends(get_session),
):
    submitted = payload.get("password") if isinstance(payload, dict) else None
    password = await encrypted_config.get(db, ctx.shop.id, "password")
    # Storefront password is kept in plain text inside the encrypted config
    if submitted == password:
        ctx.unlock_shop(ctx.shop.id)
        return success_response()
    return failure_response()
