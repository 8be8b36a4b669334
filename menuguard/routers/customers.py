"""
Customer-facing endpoints: profiles keyed by X-Session-Token and the
QR-linked menu filtered against the customer's allergens.

Session tokens are opaque and supplied by the caller; this service never
issues them and applies no expiry.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from menuguard.config import settings
from menuguard.database import get_db
from menuguard.models import ChefRequest, CustomerProfile, DietaryRestriction
from menuguard.routers.deps import (
    find_profile,
    get_restaurant_by_qr,
    not_found,
    require_session_token,
    save_failed,
)
from menuguard.schemas.customer import (
    CustomerDish,
    CustomerDishDetail,
    CustomerMenu,
    DietaryRestrictionRead,
    ProfileRead,
    ProfileUpdate,
)
from menuguard.schemas.restaurant import ChefRequestCreate, ChefRequestRead
from menuguard.schemas.scan import CatalogDish, ImagePayload, PhotoMatchResult
from menuguard.services import ai_client
from menuguard.services.ai_client import Err
from menuguard.services.aggregator import aggregate
from menuguard.services.dietary_classifier import assess_dish_for_customer, effective_allergens
from menuguard.services.matcher import match_detected_items
from menuguard.services.menu_loader import bundle_from_row, load_dish, load_menu_bundles
from menuguard.services.restrictions import list_restrictions, resolve_restrictions

logger = logging.getLogger(__name__)

router = APIRouter(tags=["customers"])


# ── Helpers ──────────────────────────────────────────────────────────────────


async def _effective(db: AsyncSession, profile: Optional[CustomerProfile]) -> list[str]:
    """Allergens the customer must avoid; none without a profile."""
    if profile is None:
        return []
    restrictions = await resolve_restrictions(db, profile.dietary_restrictions or [])
    return effective_allergens(profile.custom_allergens or [], restrictions.values())


async def _profile_read(db: AsyncSession, profile: Optional[CustomerProfile]) -> ProfileRead:
    if profile is None:
        return ProfileRead()
    return ProfileRead(
        dietary_restrictions=list(profile.dietary_restrictions or []),
        custom_allergens=list(profile.custom_allergens or []),
        severity_level=profile.severity_level,
        additional_notes=profile.additional_notes,
        effective_allergens=await _effective(db, profile),
    )


def _clean(values: list[str]) -> list[str]:
    """Trimmed, de-duplicated (case-insensitively) free-text entries."""
    seen: dict[str, str] = {}
    for value in values:
        stripped = " ".join(value.split())
        if stripped and stripped.lower() not in seen:
            seen[stripped.lower()] = stripped
    return list(seen.values())


# ── Restrictions and profiles ────────────────────────────────────────────────


@router.get("/dietary-restrictions", response_model=list[DietaryRestrictionRead])
async def get_dietary_restrictions(db: AsyncSession = Depends(get_db)) -> list[DietaryRestriction]:
    return await list_restrictions(db)


@router.get("/customers/profile", response_model=ProfileRead)
async def get_profile(
    session_token: str = Depends(require_session_token),
    db: AsyncSession = Depends(get_db),
) -> ProfileRead:
    """The caller's profile, or an empty default when none has been saved."""
    return await _profile_read(db, await find_profile(db, session_token))


@router.put("/customers/profile", response_model=ProfileRead)
async def put_profile(
    body: ProfileUpdate,
    session_token: str = Depends(require_session_token),
    db: AsyncSession = Depends(get_db),
) -> ProfileRead:
    """Create or fully replace the caller's profile. Unknown restrictions are dropped."""
    restrictions = await resolve_restrictions(db, body.dietary_restrictions)
    profile = await find_profile(db, session_token)
    if profile is None:
        profile = CustomerProfile(session_token=session_token)
        db.add(profile)
    profile.dietary_restrictions = list(restrictions)
    profile.custom_allergens = _clean(body.custom_allergens)
    profile.severity_level = body.severity_level
    profile.additional_notes = body.additional_notes
    try:
        await db.commit()
    except Exception as exc:
        await db.rollback()
        logger.error("Failed to save profile: %s", exc)
        raise save_failed("save profile") from exc
    return await _profile_read(db, profile)


@router.delete("/customers/profile")
async def delete_profile(
    session_token: str = Depends(require_session_token),
    db: AsyncSession = Depends(get_db),
) -> Response:
    profile = await find_profile(db, session_token)
    if profile is not None:
        await db.delete(profile)
        try:
            await db.commit()
        except Exception as exc:
            await db.rollback()
            logger.error("Failed to delete profile: %s", exc)
            raise save_failed("delete profile") from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ── Customer menu ────────────────────────────────────────────────────────────


@router.get("/menu/{qr_code}", response_model=CustomerMenu)
async def customer_menu(
    qr_code: str,
    session_token: str = Depends(require_session_token),
    db: AsyncSession = Depends(get_db),
) -> CustomerMenu:
    """The restaurant's active menu with a safety verdict per dish."""
    restaurant = await get_restaurant_by_qr(db, qr_code)
    avoid = await _effective(db, await find_profile(db, session_token))
    dishes = await load_menu_bundles(db, restaurant.id)
    return CustomerMenu(
        restaurant_name=restaurant.name,
        effective_allergens=avoid,
        dishes=[
            CustomerDish(
                id=d.id,
                name=d.name,
                category=d.category,
                price=d.price,
                description=d.description,
                all_allergens=aggregate(d).all_allergens,
                safety=assess_dish_for_customer(d, avoid),
            )
            for d in dishes
        ],
    )


@router.get("/menu/{qr_code}/dishes/{dish_id}", response_model=CustomerDishDetail)
async def customer_dish(
    qr_code: str,
    dish_id: str,
    session_token: str = Depends(require_session_token),
    db: AsyncSession = Depends(get_db),
) -> CustomerDishDetail:
    restaurant = await get_restaurant_by_qr(db, qr_code)
    dish = await load_dish(db, dish_id)
    if dish is None or dish.restaurant_id != restaurant.id:
        raise not_found("Dish not found", "DISH_NOT_FOUND")
    avoid = await _effective(db, await find_profile(db, session_token))
    bundle = bundle_from_row(dish)
    return CustomerDishDetail(
        dish=bundle,
        allergens=aggregate(bundle),
        safety=assess_dish_for_customer(bundle, avoid),
    )


@router.post("/menu/{qr_code}/photo-match", response_model=PhotoMatchResult)
async def photo_match(
    qr_code: str,
    body: ImagePayload,
    session_token: str = Depends(require_session_token),
    db: AsyncSession = Depends(get_db),
) -> PhotoMatchResult:
    """
    Read item names off a photo of the printed menu and pair each with the
    closest dish on this restaurant's menu.
    """
    restaurant = await get_restaurant_by_qr(db, qr_code)
    outcome = await ai_client.analyze_menu_photo(body.image)
    if isinstance(outcome, Err):
        logger.warning("Photo match for %s failed: %s", restaurant.id, outcome.error)
        return PhotoMatchResult(message="Could not read the menu photo.")

    dishes = await load_menu_bundles(db, restaurant.id)
    catalog = [CatalogDish(id=d.id, name=d.name, category=d.category) for d in dishes]
    matches = match_detected_items(outcome.value, catalog, settings.match_threshold)
    message = None if outcome.value else "No menu items were found on the photo."
    return PhotoMatchResult(matches=matches, total_items=len(outcome.value), message=message)


@router.post(
    "/menu/{qr_code}/requests",
    response_model=ChefRequestRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_chef_request(
    qr_code: str,
    body: ChefRequestCreate,
    session_token: str = Depends(require_session_token),
    db: AsyncSession = Depends(get_db),
) -> ChefRequest:
    """
    Ask the kitchen to modify a dish. A profile is created for the session
    if it has none; concerns default to the customer's effective allergens.
    """
    restaurant = await get_restaurant_by_qr(db, qr_code)
    dish = await load_dish(db, body.dish_id)
    if dish is None or dish.restaurant_id != restaurant.id:
        raise not_found("Dish not found", "DISH_NOT_FOUND")

    profile = await find_profile(db, session_token)
    if profile is None:
        profile = CustomerProfile(session_token=session_token)
        db.add(profile)
        await db.flush()

    concerns = _clean(body.dietary_concerns) or await _effective(db, profile)
    chef_request = ChefRequest(
        restaurant_id=restaurant.id,
        dish_id=dish.id,
        customer_profile_id=profile.id,
        dish_name=dish.name,
        requested_modifications=body.requested_modifications.strip(),
        dietary_concerns=concerns,
        status="pending",
    )
    db.add(chef_request)
    try:
        await db.commit()
    except Exception as exc:
        await db.rollback()
        logger.error("Failed to save chef request: %s", exc)
        raise save_failed("save request") from exc
    await db.refresh(chef_request)
    logger.info("Chef request %s created for dish %s", chef_request.id, dish.id)
    return chef_request
