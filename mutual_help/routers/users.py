from __future__ import annotations

import uuid

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from mutual_help.config import get_settings
from mutual_help.crud import AdCRUD, ResetTokenCRUD, TokenCRUD, UserContactCRUD, UserCRUD
from mutual_help.db import get_db
from mutual_help.deps import get_admin_user, get_current_token, get_current_user, is_admin
from mutual_help.logging_config import get_logger
from mutual_help.mailer import send_reset_password_email, send_welcome_email
from mutual_help.schemas import (
    AdOut,
    ContactData,
    ContactInfo,
    ContactRequestFrom,
    IsValid,
    LoginRequest,
    PasswordChange,
    RegisterRequest,
    ResetPasswordData,
    ResetPasswordRequest,
    ResetTokenCheck,
    TokenResponse,
    UserContactOut,
    UserPublic,
    UserTypeUpdate,
    UserUpdate,
)
from mutual_help.security import verify_password

LOGGER = get_logger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


# -------------------- AUTH --------------------

@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(
    payload: RegisterRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    exists = await UserCRUD(db).get_by_email(payload.email)
    if exists:
        raise HTTPException(status_code=409, detail="Email already exists")

    user = await UserCRUD(db).create(
        firstname=payload.firstname,
        lastname=payload.lastname,
        email=payload.email.strip().lower(),
        password=payload.password,
    )
    LOGGER.info("User registered", extra={"user_id": str(user.id)})
    background_tasks.add_task(send_welcome_email, user.firstname, user.email)

    token = await TokenCRUD(db).issue(user, limit=get_settings().login_token_limit)
    return TokenResponse(token=token, user_type=user.user_type)


@router.post("/login", response_model=TokenResponse)
async def login(payload: LoginRequest, db: AsyncSession = Depends(get_db)):
    user = await UserCRUD(db).verify_credentials(payload.email, payload.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid email or password")

    token = await TokenCRUD(db).issue(user, limit=get_settings().login_token_limit)
    return TokenResponse(token=token, user_type=user.user_type)


@router.delete("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(token: str = Depends(get_current_token), db: AsyncSession = Depends(get_db)):
    await TokenCRUD(db).revoke(token)
    return None


@router.delete("/logout/all", status_code=status.HTTP_204_NO_CONTENT)
async def logout_all(db: AsyncSession = Depends(get_db), current_user=Depends(get_current_user)):
    await TokenCRUD(db).revoke_all(current_user.id)
    return None


# -------------------- PROFILE --------------------

@router.get("/self", response_model=UserPublic)
async def get_self(current_user=Depends(get_current_user)):
    return current_user


@router.put("/edit", response_model=UserPublic)
async def edit_self(
    payload: UserUpdate,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    email = payload.email.strip().lower()
    other = await UserCRUD(db).get_by_email(email)
    if other is not None and other.id != current_user.id:
        raise HTTPException(status_code=409, detail="Email already exists")

    return await UserCRUD(db).update_profile(
        current_user,
        firstname=payload.firstname,
        lastname=payload.lastname,
        email=email,
    )


@router.put("/change/password", status_code=status.HTTP_202_ACCEPTED)
async def change_password(
    payload: PasswordChange,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    if not verify_password(payload.old_password, current_user.password_hash):
        raise HTTPException(status_code=400, detail="Wrong password")

    await UserCRUD(db).set_password(current_user, payload.new_password)
    return None


# -------------------- PASSWORD RESET --------------------

@router.post("/resetPassword", status_code=status.HTTP_202_ACCEPTED)
async def reset_password(
    payload: ResetPasswordRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
):
    user = await UserCRUD(db).get_by_email(payload.email)
    if user is None or user.deleted_at is not None:
        raise HTTPException(status_code=404, detail="User not found")

    token = await ResetTokenCRUD(db, get_settings().reset_token_ttl_minutes).create(user)
    background_tasks.add_task(send_reset_password_email, user.firstname, user.email, token)
    return None


@router.post("/confirmResetToken", response_model=IsValid)
async def confirm_reset_token(payload: ResetTokenCheck, db: AsyncSession = Depends(get_db)):
    is_valid = await ResetTokenCRUD(db, get_settings().reset_token_ttl_minutes).check(payload.token)
    return IsValid(is_valid=is_valid)


@router.post("/updatePassword", status_code=status.HTTP_202_ACCEPTED)
async def update_password(payload: ResetPasswordData, db: AsyncSession = Depends(get_db)):
    user = await ResetTokenCRUD(db, get_settings().reset_token_ttl_minutes).consume(payload.token, payload.password)
    if user is None:
        raise HTTPException(status_code=404, detail="Reset token not found or expired")
    LOGGER.info("Password reset", extra={"user_id": str(user.id)})
    return None


# -------------------- CONTACTS --------------------

@router.get("/contacts", response_model=list[ContactInfo])
async def list_contacts(db: AsyncSession = Depends(get_db), current_user=Depends(get_current_user)):
    contacts = await UserContactCRUD(db).contacts(current_user.id)
    ad_crud = AdCRUD(db)
    result = []
    for contact in contacts:
        ads = await ad_crud.list_of_user(contact.id)
        result.append(
            ContactInfo(
                contact=UserPublic.model_validate(contact),
                ads=[AdOut.model_validate(ad) for ad in ads],
            )
        )
    return result


@router.get("/contacts/requests", response_model=list[ContactRequestFrom])
async def list_contact_requests(db: AsyncSession = Depends(get_db), current_user=Depends(get_current_user)):
    senders = await UserContactCRUD(db).pending_requests(current_user.id)
    return [ContactRequestFrom(user_id=u.id, firstname=u.firstname) for u in senders]


# -------------------- ADMIN --------------------

@router.get("/all", response_model=list[UserPublic])
async def list_users(db: AsyncSession = Depends(get_db), current_user=Depends(get_admin_user)):
    return await UserCRUD(db).list()


@router.get("/access", response_model=UserPublic)
async def admin_access(current_user=Depends(get_admin_user)):
    return current_user


@router.delete("/delete/user/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    if not is_admin(current_user) and current_user.id != user_id:
        raise HTTPException(status_code=403, detail="Forbidden")

    target = await UserCRUD(db).get(user_id)
    if not target:
        raise HTTPException(status_code=404, detail="User not found")

    await UserCRUD(db).delete_cascade(target)
    LOGGER.info("User deleted", extra={"user_id": str(user_id)})
    return None


@router.put("/{user_id}/type", response_model=UserPublic)
async def change_user_type(
    user_id: uuid.UUID,
    payload: UserTypeUpdate,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_admin_user),
):
    target = await UserCRUD(db).get(user_id)
    if not target:
        raise HTTPException(status_code=404, detail="User not found")
    return await UserCRUD(db).set_user_type(target, payload.user_type)


# -------------------- CONTACT REQUESTS --------------------

@router.post("/{ad_id}/request/send", response_model=UserContactOut, status_code=201)
async def send_contact_request(
    ad_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    ad = await AdCRUD(db).get(ad_id)
    if ad is None:
        raise HTTPException(status_code=404, detail="Ad not found")
    if ad.user_id == current_user.id:
        raise HTTPException(status_code=400, detail="Cannot send a contact request to yourself")

    crud = UserContactCRUD(db)
    if await crud.edge(current_user.id, ad.user_id) or await crud.edge(ad.user_id, current_user.id):
        raise HTTPException(status_code=409, detail="Contact request already exists")

    return await crud.send(sender_id=current_user.id, receiver_id=ad.user_id)


@router.put(
    "/{user_id}/contacts/requests/accept",
    response_model=UserContactOut,
    status_code=status.HTTP_202_ACCEPTED,
)
async def accept_contact_request(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    crud = UserContactCRUD(db)
    pivot = await crud.edge(user_id, current_user.id)
    if pivot is None:
        raise HTTPException(status_code=404, detail="Contact request not found")
    return await crud.accept(pivot)


@router.delete("/{user_id}/contacts/requests/decline", status_code=status.HTTP_204_NO_CONTENT)
async def decline_contact_request(
    user_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    crud = UserContactCRUD(db)
    pivot = await crud.edge(user_id, current_user.id)
    if pivot is None:
        raise HTTPException(status_code=404, detail="Contact request not found")
    await crud.decline(pivot)
    return None


@router.get("/{ad_id}/contacts", response_model=ContactData)
async def get_ad_contact(
    ad_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_current_user),
):
    ad = await AdCRUD(db).get(ad_id)
    if ad is None:
        raise HTTPException(status_code=404, detail="Ad not found")

    owner = await UserCRUD(db).get(ad.user_id)
    if owner is None:
        raise HTTPException(status_code=404, detail="User not found")

    return await UserContactCRUD(db).resolve(current_user, owner)
