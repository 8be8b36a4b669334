"""
Restaurant endpoints for staff — all protected by X-Service-Token.
Covers onboarding state, the customer menu URL, the allergen matrix, the CSV
report and chef modification requests.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from menuguard.config import settings
from menuguard.database import get_db
from menuguard.models import ChefRequest, Restaurant
from menuguard.routers.deps import (
    get_restaurant_or_404,
    not_found,
    save_failed,
    verify_service_token,
)
from menuguard.schemas.allergen import AllergenMatrix, MatrixRow
from menuguard.schemas.restaurant import (
    ChefRequestPatch,
    ChefRequestRead,
    MenuUrlResponse,
    RestaurantCreate,
    RestaurantRead,
)
from menuguard.services.aggregator import aggregate
from menuguard.services.export import EmptyMenuError, render_menu_csv, report_filename
from menuguard.services.menu_loader import load_menu_bundles
from menuguard.utils.allergen_data import MATRIX_ALLERGENS

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/restaurants",
    tags=["restaurants"],
    dependencies=[Depends(verify_service_token)],
)


# ── Helpers ──────────────────────────────────────────────────────────────────


def menu_url(restaurant: Restaurant) -> str:
    """The customer menu address; the QR code encodes exactly this URL."""
    return f"{settings.public_origin.rstrip('/')}/?qr={restaurant.qr_code}"


async def _commit(db: AsyncSession, what: str) -> None:
    try:
        await db.commit()
    except Exception as exc:
        await db.rollback()
        logger.error("Failed to %s: %s", what, exc)
        raise save_failed(what) from exc


# ── Restaurants ──────────────────────────────────────────────────────────────


@router.post("", response_model=RestaurantRead, status_code=status.HTTP_201_CREATED)
async def create_restaurant(
    body: RestaurantCreate,
    db: AsyncSession = Depends(get_db),
) -> Restaurant:
    """Create a restaurant with a fresh QR token."""
    restaurant = Restaurant(
        name=body.name.strip(),
        owner_ref=body.owner_ref,
        qr_code=secrets.token_hex(8),
    )
    db.add(restaurant)
    await _commit(db, "create restaurant")
    logger.info("Created restaurant %s (%s)", restaurant.id, restaurant.name)
    return restaurant


@router.get("/{restaurant_id}", response_model=RestaurantRead)
async def get_restaurant(
    restaurant: Restaurant = Depends(get_restaurant_or_404),
) -> Restaurant:
    return restaurant


@router.post("/{restaurant_id}/terms", response_model=RestaurantRead)
async def accept_terms(
    restaurant: Restaurant = Depends(get_restaurant_or_404),
    db: AsyncSession = Depends(get_db),
) -> Restaurant:
    """Record acceptance of the allergen-disclosure liability terms."""
    if not restaurant.terms_accepted:
        restaurant.terms_accepted = True
        restaurant.terms_accepted_at = datetime.now(timezone.utc)
        await _commit(db, "accept terms")
    return restaurant


@router.post("/{restaurant_id}/onboarding/complete", response_model=RestaurantRead)
async def complete_onboarding(
    restaurant: Restaurant = Depends(get_restaurant_or_404),
    db: AsyncSession = Depends(get_db),
) -> Restaurant:
    """Mark onboarding finished. Terms must have been accepted first."""
    if not restaurant.terms_accepted:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Terms must be accepted before onboarding can complete",
            headers={"X-Error-Code": "TERMS_NOT_ACCEPTED"},
        )
    restaurant.onboarding_completed = True
    await _commit(db, "complete onboarding")
    return restaurant


@router.get("/{restaurant_id}/menu-url", response_model=MenuUrlResponse)
async def get_menu_url(
    restaurant: Restaurant = Depends(get_restaurant_or_404),
) -> MenuUrlResponse:
    return MenuUrlResponse(qr_code=restaurant.qr_code, url=menu_url(restaurant))


# ── Allergen views ───────────────────────────────────────────────────────────


@router.get("/{restaurant_id}/allergen-matrix", response_model=AllergenMatrix)
async def allergen_matrix(
    restaurant: Restaurant = Depends(get_restaurant_or_404),
    db: AsyncSession = Depends(get_db),
) -> AllergenMatrix:
    """Per-dish three-way allergen status, grouped by menu category."""
    dishes = await load_menu_bundles(db, restaurant.id)
    categories: dict[str, list[MatrixRow]] = {}
    for dish in dishes:
        result = aggregate(dish)
        categories.setdefault(dish.category or "Other", []).append(
            MatrixRow(
                dish_id=dish.id,
                name=dish.name,
                category=dish.category,
                all_allergens=result.all_allergens,
                statuses={a: result.per_allergen_status[a] for a in MATRIX_ALLERGENS},
            )
        )
    return AllergenMatrix(
        restaurant_id=restaurant.id,
        allergens=list(MATRIX_ALLERGENS),
        categories=categories,
    )


@router.get("/{restaurant_id}/export.csv")
async def export_csv(
    restaurant: Restaurant = Depends(get_restaurant_or_404),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Download the allergen report as CSV."""
    dishes = await load_menu_bundles(db, restaurant.id)
    try:
        content = render_menu_csv(dishes)
    except EmptyMenuError as exc:
        raise not_found(str(exc), "NO_MENU_ITEMS") from exc
    filename = report_filename(restaurant.name)
    return Response(
        content=content.encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ── Chef requests ────────────────────────────────────────────────────────────


@router.get("/{restaurant_id}/requests", response_model=list[ChefRequestRead])
async def list_requests(
    request_status: Optional[Literal["pending", "approved", "declined"]] = Query(
        default=None, alias="status"
    ),
    restaurant: Restaurant = Depends(get_restaurant_or_404),
    db: AsyncSession = Depends(get_db),
) -> list[ChefRequest]:
    """Chef requests for this restaurant, newest first."""
    stmt = select(ChefRequest).where(ChefRequest.restaurant_id == restaurant.id)
    if request_status:
        stmt = stmt.where(ChefRequest.status == request_status)
    result = await db.execute(stmt.order_by(ChefRequest.created_at.desc()))
    return list(result.scalars().all())


@router.patch("/{restaurant_id}/requests/{request_id}", response_model=ChefRequestRead)
async def respond_to_request(
    request_id: str,
    body: ChefRequestPatch,
    restaurant: Restaurant = Depends(get_restaurant_or_404),
    db: AsyncSession = Depends(get_db),
) -> ChefRequest:
    """Approve or decline a chef request with an optional response."""
    chef_request = await db.get(ChefRequest, request_id)
    if chef_request is None or chef_request.restaurant_id != restaurant.id:
        raise not_found("Request not found", "REQUEST_NOT_FOUND")
    chef_request.status = body.status
    chef_request.response = body.response
    await _commit(db, "update request")
    await db.refresh(chef_request)
    return chef_request
