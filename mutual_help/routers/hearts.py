from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from mutual_help.crud import AdCRUD, ContactCRUD, HeartCRUD
from mutual_help.db import get_db
from mutual_help.deps import get_admin_user, get_standard_user, require_owner_or_admin
from mutual_help.schemas import ContactCreate, ContactOut, HeartCreate, HeartOut

hearts_router = APIRouter(prefix="/api/hearts", tags=["hearts"])
contacts_router = APIRouter(prefix="/api/contacts", tags=["contacts"])


# -------------------- HEARTS --------------------

@hearts_router.post("", response_model=HeartOut, status_code=201)
async def create_heart(
    payload: HeartCreate,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_standard_user),
):
    if await AdCRUD(db).get(payload.ad_id) is None:
        raise HTTPException(status_code=404, detail="Ad not found")
    return await HeartCRUD(db).create(user_id=current_user.id, ad_id=payload.ad_id)


@hearts_router.delete("/{heart_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_heart(
    heart_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_standard_user),
):
    crud = HeartCRUD(db)
    heart = await crud.get(heart_id)
    if heart is None:
        raise HTTPException(status_code=404, detail="Heart not found")
    require_owner_or_admin(current_user, heart.user_id)
    await crud.delete(heart)
    return None


# -------------------- LEGACY CONTACTS --------------------

@contacts_router.post("", response_model=ContactOut, status_code=201)
async def create_contact(
    payload: ContactCreate,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_standard_user),
):
    return await ContactCRUD(db).create(
        ad_link=payload.ad_link,
        facebook_link=payload.facebook_link,
        contact_name=payload.contact_name,
    )


@contacts_router.get("", response_model=list[ContactOut])
async def list_contacts(db: AsyncSession = Depends(get_db)):
    return await ContactCRUD(db).list()


@contacts_router.delete("/{contact_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_contact(
    contact_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_admin_user),
):
    ok = await ContactCRUD(db).delete(contact_id)
    if not ok:
        raise HTTPException(status_code=404, detail="Contact not found")
    return None
