"""
Seller authentication endpoints.

    GET    /auth               who am I (email, role, shops)
    GET    /auth/{email}       does an account exist (404 / 204)
    POST   /auth/login         seller login
    POST   /auth/logout        drop the session
    POST   /auth/registration  create the first (superuser) account
    DELETE /auth/registration  delete the logged-in seller
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from .core.config import get_settings
from .core.db import get_session
from .core.request_context import (
    RequestContext,
    authorize_seller_and_shop,
    get_request_context,
    resolve_seller,
)
from .core.responses import failure_response, success_response
from .models import ShopRole
from .queries import (
    delete_seller,
    find_seller_by_email,
    find_shops_for_seller,
    list_shops,
)
from .rate_limiter import rate_limit_dependency
from .schemas import LoginRequest, shop_summary
from .sellers import check_password, create_seller, num_sellers

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(tags=["auth"])


@router.get("/auth")
async def get_auth(
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_session),
):
    """
    Resolve the session into the seller's email, role and shops.

    Superusers see every shop as admin. Other sellers see only the shops they
    are linked to, each with the link's role; the top-level role is their role
    on the shop named by the request's shop token, if any.
    """
    if not ctx.is_logged_in:
        return failure_response()

    # 401 when the session outlived its seller
    seller = await resolve_seller(ctx, db)

    if seller.superuser:
        shops = [shop_summary(shop, ShopRole.ADMIN.value) for shop in await list_shops(db)]
        return success_response(email=seller.email, role=ShopRole.ADMIN.value, shops=shops)

    linked = await find_shops_for_seller(db, seller.id)
    shops = [shop_summary(shop, role) for shop, role in linked]
    role = ""
    if ctx.shop_token:
        role = next((r for shop, r in linked if shop.auth_token == ctx.shop_token), "")
    return success_response(email=seller.email, role=role, shops=shops)


# TODO: move the probe window to a shared store once the API runs more than one worker
@router.get(
    "/auth/{email}",
    dependencies=[
        Depends(
            rate_limit_dependency(
                settings.email_probe_rate_limit,
                settings.email_probe_rate_window,
                endpoint="auth-email-probe",
            )
        )
    ],
)
async def probe_email(email: str, db: AsyncSession = Depends(get_session)):
    seller = await find_seller_by_email(db, email)
    code = status.HTTP_404_NOT_FOUND if seller is None else status.HTTP_204_NO_CONTENT
    return Response(status_code=code)


@router.post("/auth/login")
async def login(
    body: LoginRequest,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_session),
):
    seller = await find_seller_by_email(db, body.email)
    if seller is None:
        return failure_response(status.HTTP_404_NOT_FOUND, message="Invalid email")

    if not check_password(body.password, seller.password):
        return failure_response(status.HTTP_404_NOT_FOUND, message="Invalid password")

    ctx.log_in(seller)
    logger.info(f"Seller {seller.id} logged in")

    await authorize_seller_and_shop(ctx, db, shop_required=False)
    return success_response(email=seller.email, role=ctx.role or "")


@router.post("/auth/logout")
async def logout(ctx: RequestContext = Depends(get_request_context)):
    if not ctx.is_logged_in:
        return failure_response()

    seller_id = ctx.seller_id
    ctx.clear()
    logger.info(f"Seller {seller_id} logged out")
    return success_response()


@router.post("/auth/registration")
async def register(
    payload: Optional[dict[str, Any]] = Body(default=None),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_session),
):
    """First-run registration: only allowed while no seller exists."""
    if await num_sellers(db) > 0:
        return failure_response(
            status.HTTP_409_CONFLICT,
            message="An initial user has already been setup",
        )

    result = await create_seller(db, payload or {}, superuser=True)
    if result.error:
        return failure_response(result.status, message=result.error)
    if result.seller is None:
        return failure_response()

    await db.commit()
    ctx.log_in(result.seller)
    logger.info(f"Registered initial superuser {result.seller.id}")
    return success_response()


@router.delete("/auth/registration")
async def unregister(
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_session),
):
    if not ctx.is_logged_in:
        return failure_response(status.HTTP_400_BAD_REQUEST)

    seller_id = ctx.seller_id
    destroyed = await delete_seller(db, seller_id)
    await db.commit()
    ctx.clear()
    logger.info(f"Seller {seller_id} deleted their account ({destroyed} row(s))")

    # success stays false even when a row was deleted; clients key off `destroy`
    return failure_response(destroy=destroyed)
