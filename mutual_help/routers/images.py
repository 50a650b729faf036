from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from mutual_help import storage
from mutual_help.crud import AdCRUD
from mutual_help.db import get_db
from mutual_help.deps import get_standard_user, require_owner_or_admin
from mutual_help.logging_config import get_logger
from mutual_help.schemas import ImageUploadRequest, ImageUploadResponse

LOGGER = get_logger(__name__)

router = APIRouter(prefix="/aws", tags=["images"])


@router.post("/image", response_model=ImageUploadResponse, status_code=201)
async def create_image_upload(
    payload: ImageUploadRequest,
    db: AsyncSession = Depends(get_db),
    current_user=Depends(get_standard_user),
):
    crud = AdCRUD(db)
    ad = await crud.get(payload.ad_id)
    if ad is None:
        raise HTTPException(status_code=404, detail="Ad not found")
    require_owner_or_admin(current_user, ad.user_id)

    filename = storage.new_image_filename()
    # the filename is recorded only once the URL is signed
    url = storage.presigned_upload_url(filename, payload.content_type)
    await crud.add_image(ad, filename)
    LOGGER.info("Image upload signed", extra={"ad_id": str(ad.id)})
    return ImageUploadResponse(filename=filename, url=url)


@router.get("/{ad_id}/images", response_model=list[str])
async def get_image_urls(ad_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    ad = await AdCRUD(db).get(ad_id)
    if ad is None:
        raise HTTPException(status_code=404, detail="Ad not found")
    if not ad.images:
        raise HTTPException(status_code=404, detail="Ad has no images")
    return [storage.presigned_download_url(name) for name in ad.images]
