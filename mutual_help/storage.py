"""Ad images in the S3 bucket: presigned URLs and deletion."""
from __future__ import annotations

import uuid
from functools import lru_cache

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from mutual_help.config import get_settings
from mutual_help.exceptions import StorageError
from mutual_help.logging_config import get_logger

LOGGER = get_logger(__name__)


@lru_cache
def get_s3_client():
    settings = get_settings()
    return boto3.client(
        "s3",
        region_name=settings.bucket_region,
        endpoint_url=settings.bucket_endpoint_url,
        aws_access_key_id=settings.bucket_access_key,
        aws_secret_access_key=settings.bucket_secret_key,
    )


def image_key(filename: str) -> str:
    path = get_settings().bucket_image_path.strip("/")
    return f"{path}/{filename}" if path else filename


def new_image_filename(extension: str = "png") -> str:
    return f"{str(uuid.uuid4()).upper()}.{extension}"


def presigned_upload_url(filename: str, content_type: str = "image/png") -> str:
    """PUT URL the client uploads the image to; the object is made public-read."""
    settings = get_settings()
    try:
        return get_s3_client().generate_presigned_url(
            "put_object",
            Params={
                "Bucket": settings.bucket_name,
                "Key": image_key(filename),
                "ACL": "public-read",
                "ContentType": content_type,
            },
            ExpiresIn=settings.presigned_url_expiry_seconds,
        )
    except (BotoCoreError, ClientError) as e:
        raise StorageError(f"Cannot sign upload URL for {filename}") from e


def presigned_download_url(filename: str) -> str:
    settings = get_settings()
    try:
        return get_s3_client().generate_presigned_url(
            "get_object",
            Params={"Bucket": settings.bucket_name, "Key": image_key(filename)},
            ExpiresIn=settings.presigned_url_expiry_seconds,
        )
    except (BotoCoreError, ClientError) as e:
        raise StorageError(f"Cannot sign download URL for {filename}") from e


def delete_image(filename: str) -> None:
    settings = get_settings()
    try:
        get_s3_client().delete_object(Bucket=settings.bucket_name, Key=image_key(filename))
    except (BotoCoreError, ClientError) as e:
        raise StorageError(f"Cannot delete image {filename}") from e


def delete_images(filenames: list[str] | None) -> int:
    """Delete every file, logging failures. Returns how many could not be removed."""
    failed = 0
    for name in filenames or []:
        try:
            delete_image(name)
        except StorageError:
            LOGGER.exception("Error with deleting image %s of the ad", name)
            failed += 1
    return failed
