from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from mutual_help.crud import AdCRUD, CategoryCRUD, DemandCRUD, OfferCRUD
from mutual_help.db import get_db
from mutual_help.deps import get_admin_user, get_standard_user, require_owner_or_admin
from mutual_help.schemas import CategoryCreate, CategoryOut, DemandCreate, DemandOut, OfferOut, TagStrings

demands_router = APIRouter(prefix="/api/demands", tags=["demands"])
offers_router = APIRouter(prefix="/api/offers", tags=["offers"])
categories_router = APIRouter(prefix="/api/categories", tags=["categories"])


async def _get_owned_ad(db: AsyncSession, ad_id: uuid.UUID, user):
    ad = await AdCRUD(db).get(ad_id)
    if ad is None:
        raise HTTPException(status_code=404, detail="Ad not found")
    require_owner_or_admin(user, ad.user_id)
    return ad


async def _get_demand_or_404(db: AsyncSession, demand_id: uuid.UUID):
    demand = await DemandCRUD(db).get(demand_id)
    if demand is None:
        raise HTTPException(status_code=404, detail="Demand not found")
    return demand


async def _get_offer_or_404(db: AsyncSession, offer_id: uuid.UUID):
    offer = await OfferCRUD(db).get(offer_id)
    if offer is None:
        raise HTTPException(status_code=404, detail="Offer not found")
    return offer


async def _get_category_or_404(db: AsyncSession, category_id: uuid.UUID):
    category = await CategoryCRUD(db).get(category_id)
    if category is None:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


# -------------------- DEMANDS --------------------

@demands_router.post("", response_model=DemandOut, status_code=201)
async def create_demand(
    payload: DemandCreate,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_admin_user),
):
    if await AdCRUD(db).get(payload.ad_id) is None:
        raise HTTPException(status_code=404, detail="Ad not found")
    return await DemandCRUD(db).create(demand=payload.demand, ad_id=payload.ad_id)


@demands_router.get("", response_model=list[DemandOut])
async def list_demands(db: AsyncSession = Depends(get_db), current_user=Depends(get_admin_user)):
    return await DemandCRUD(db).list()


@demands_router.post("/create", response_model=list[DemandOut], status_code=201)
async def create_ad_demands(
    payload: TagStrings,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_standard_user),
):
    await _get_owned_ad(db, payload.ad_id, current_user)
    return await DemandCRUD(db).create_many(strings=payload.strings, ad_id=payload.ad_id)


@demands_router.get("/{demand_id}/offer", response_model=list[OfferOut])
async def get_demand_offers(demand_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    await _get_demand_or_404(db, demand_id)
    return await DemandCRUD(db).offers(demand_id)


@demands_router.post("/{demand_id}/offer/{offer_id}", status_code=201)
async def pair_demand_with_offer(
    demand_id: uuid.UUID,
    offer_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_admin_user),
):
    demand = await _get_demand_or_404(db, demand_id)
    offer = await _get_offer_or_404(db, offer_id)
    if not await DemandCRUD(db).add_offer(demand, offer):
        raise HTTPException(status_code=409, detail="Demand and offer already paired")
    return None


@demands_router.delete("/{demand_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_demand(
    demand_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_admin_user),
):
    ok = await DemandCRUD(db).delete(demand_id)
    if not ok:
        raise HTTPException(status_code=404, detail="Demand not found")
    return None


# -------------------- OFFERS --------------------

@offers_router.post("/create", response_model=list[OfferOut], status_code=201)
async def create_ad_offers(
    payload: TagStrings,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_standard_user),
):
    await _get_owned_ad(db, payload.ad_id, current_user)
    return await OfferCRUD(db).create_many(strings=payload.strings, ad_id=payload.ad_id)


@offers_router.get("/{offer_id}/demand", response_model=list[DemandOut])
async def get_offer_demands(offer_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    await _get_offer_or_404(db, offer_id)
    return await OfferCRUD(db).demands(offer_id)


# -------------------- CATEGORIES --------------------

@categories_router.post("", response_model=CategoryOut, status_code=201)
async def create_category(
    payload: CategoryCreate,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_admin_user),
):
    if payload.main_category_id is not None:
        await _get_category_or_404(db, payload.main_category_id)
    return await CategoryCRUD(db).create(name=payload.name, main_category_id=payload.main_category_id)


@categories_router.get("", response_model=list[CategoryOut])
async def list_categories(db: AsyncSession = Depends(get_db)):
    return await CategoryCRUD(db).list()


@categories_router.get("/{category_id}", response_model=CategoryOut)
async def get_category(category_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    return await _get_category_or_404(db, category_id)


@categories_router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_admin_user),
):
    category = await _get_category_or_404(db, category_id)
    await CategoryCRUD(db).soft_delete(category)
    return None


@categories_router.get("/{category_id}/maincategory", response_model=CategoryOut)
async def get_main_category(category_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    category = await _get_category_or_404(db, category_id)
    if category.main_category_id is None:
        raise HTTPException(status_code=404, detail="Category has no main category")
    return await _get_category_or_404(db, category.main_category_id)


@categories_router.get("/{category_id}/subcategories", response_model=list[CategoryOut])
async def get_subcategories(category_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    await _get_category_or_404(db, category_id)
    return await CategoryCRUD(db).subcategories(category_id)


@categories_router.post("/{category_id}/demands/{demand_id}", status_code=201)
async def attach_demand_to_category(
    category_id: uuid.UUID,
    demand_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_admin_user),
):
    category = await _get_category_or_404(db, category_id)
    demand = await _get_demand_or_404(db, demand_id)
    if not await CategoryCRUD(db).attach_demand(category, demand):
        raise HTTPException(status_code=409, detail="Demand already in category")
    return None


@categories_router.post("/{category_id}/offers/{offer_id}", status_code=201)
async def attach_offer_to_category(
    category_id: uuid.UUID,
    offer_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_admin_user),
):
    category = await _get_category_or_404(db, category_id)
    offer = await _get_offer_or_404(db, offer_id)
    if not await CategoryCRUD(db).attach_offer(category, offer):
        raise HTTPException(status_code=409, detail="Offer already in category")
    return None
