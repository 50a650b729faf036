from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from mutual_help.crud import AdCRUD, CityCRUD, DepartmentCRUD
from mutual_help.db import get_db
from mutual_help.deps import get_admin_user, get_standard_user, require_owner_or_admin
from mutual_help.logging_config import get_logger
from mutual_help.schemas import (
    AdCreate,
    AdData,
    AdOfUserData,
    AdOut,
    AdsOfPerimeter,
    AdUpdate,
    AdWithUser,
    CityOut,
    DemandOut,
    LikeResult,
    OfferOut,
)

LOGGER = get_logger(__name__)

router = APIRouter(prefix="/api/ads", tags=["ads"])


async def _get_ad_or_404(db: AsyncSession, ad_id: uuid.UUID):
    ad = await AdCRUD(db).get(ad_id)
    if ad is None:
        raise HTTPException(status_code=404, detail="Ad not found")
    return ad


# -------------------- STANDARD / ADMIN --------------------

@router.post("/create", response_model=AdOut, status_code=201)
async def create_ad(
    payload: AdCreate,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_standard_user),
):
    if await CityCRUD(db).get(payload.city_id) is None:
        raise HTTPException(status_code=404, detail="City not found")

    ad = await AdCRUD(db).create(
        note=payload.note,
        city_id=payload.city_id,
        user_id=current_user.id,
        generosity=payload.generosity,
        demands=payload.demands,
        offers=payload.offers,
    )
    LOGGER.info("Ad created", extra={"user_id": str(current_user.id), "ad_id": str(ad.id)})
    return ad


@router.get("/self", response_model=list[AdOfUserData])
async def list_own_ads(db: AsyncSession = Depends(get_db), current_user=Depends(get_standard_user)):
    crud = AdCRUD(db)
    ads = await crud.list_of_user(current_user.id)
    if not ads:
        raise HTTPException(status_code=404, detail="No ads found")
    return [await crud.ad_of_user_data(ad) for ad in ads]


@router.get("/all", response_model=list[AdWithUser])
async def list_all_ads(db: AsyncSession = Depends(get_db), current_user=Depends(get_admin_user)):
    return await AdCRUD(db).all_with_users()


@router.get("/all/{department_id}", response_model=AdsOfPerimeter)
async def list_ads_of_perimeter(department_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    department = await DepartmentCRUD(db).get(department_id)
    if department is None:
        raise HTTPException(status_code=404, detail="Department not found")
    return await DepartmentCRUD(db).ads_of_perimeter(department)


@router.delete("/delete/{ad_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_ad(
    ad_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_standard_user),
):
    ad = await _get_ad_or_404(db, ad_id)
    require_owner_or_admin(current_user, ad.user_id)

    await AdCRUD(db).soft_delete(ad)
    LOGGER.info("Ad deleted", extra={"user_id": str(current_user.id), "ad_id": str(ad_id)})
    return None


@router.put("/{ad_id}/update", response_model=AdOut)
async def update_ad(
    ad_id: uuid.UUID,
    payload: AdUpdate,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_standard_user),
):
    # only the owner's ads are visible here, someone else's ad is a 404
    ad = await AdCRUD(db).get_of_user(ad_id, current_user.id)
    if ad is None:
        raise HTTPException(status_code=404, detail="Ad not found")

    if payload.city_id is not None and await CityCRUD(db).get(payload.city_id) is None:
        raise HTTPException(status_code=404, detail="City not found")

    return await AdCRUD(db).update(
        ad,
        note=payload.note,
        demands=payload.demands,
        offers=payload.offers,
        city_id=payload.city_id,
        generosity=payload.generosity,
        show=payload.show,
    )


@router.post("/{ad_id}/like", response_model=LikeResult)
async def like_ad(
    ad_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_standard_user),
):
    await _get_ad_or_404(db, ad_id)
    liked = await AdCRUD(db).toggle_heart(user_id=current_user.id, ad_id=ad_id)
    return LikeResult(liked=liked)


# -------------------- OPEN --------------------

@router.get("/{ad_id}", response_model=AdData)
async def get_ad(ad_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    ad = await _get_ad_or_404(db, ad_id)
    return await AdCRUD(db).ad_data(ad)


@router.get("/{ad_id}/city", response_model=CityOut)
async def get_ad_city(ad_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    ad = await _get_ad_or_404(db, ad_id)
    city = await CityCRUD(db).get(ad.city_id)
    if city is None:
        raise HTTPException(status_code=404, detail="City not found")
    return city


@router.get("/{ad_id}/demands", response_model=list[DemandOut])
async def get_ad_demands(ad_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    await _get_ad_or_404(db, ad_id)
    return await AdCRUD(db).demands(ad_id)


@router.get("/{ad_id}/offers", response_model=list[OfferOut])
async def get_ad_offers(ad_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    await _get_ad_or_404(db, ad_id)
    return await AdCRUD(db).offers(ad_id)
