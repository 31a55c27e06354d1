# app/services/r2_helper.py
import logging
import time
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import UploadFile
from slugify import slugify

from app.config import settings
from app.services.r2_client import get_s3_client
from app.utils.errors import ExternalServiceError

logger = logging.getLogger(__name__)

DOWNLOAD_URL_TTL = 900  # 15 minutes


def is_storage_key(ref: Optional[str]) -> bool:
    return bool(ref) and not ref.startswith(("http://", "https://", "#"))


def upload_asset_file(file: UploadFile, title: str, folder: str = "assets") -> str:
    ext = file.filename.rsplit(".", 1)[-1].lower() if "." in file.filename else "bin"
    key = f"{folder}/{slugify(title)}_{int(time.time())}.{ext}"

    try:
        get_s3_client().upload_fileobj(
            file.file,
            settings.r2_bucket_name,
            key,
            ExtraArgs={"ContentType": file.content_type or "application/octet-stream"},
        )
    except (BotoCoreError, ClientError) as e:
        logger.error("Upload of %s failed: %s", key, e)
        raise ExternalServiceError("File storage unavailable") from e

    return key


def delete_stored_file(key: Optional[str]) -> None:
    if not settings.storage_enabled or not is_storage_key(key):
        return
    try:
        get_s3_client().delete_object(Bucket=settings.r2_bucket_name, Key=key)
    except (BotoCoreError, ClientError) as e:
        # orphaned object, not worth failing the admin delete over
        logger.warning("Could not delete %s from storage: %s", key, e)


def to_download_url(ref: Optional[str], expires: int = DOWNLOAD_URL_TTL) -> Optional[str]:
    """Presign storage keys; absolute URLs pass through unchanged."""
    if not ref:
        return None
    if not settings.storage_enabled or not is_storage_key(ref):
        return ref

    try:
        return get_s3_client().generate_presigned_url(
            "get_object",
            Params={
                "Bucket": settings.r2_bucket_name,
                "Key": ref,
                "ResponseContentDisposition": "attachment",
            },
            ExpiresIn=expires,
        )
    except (BotoCoreError, ClientError) as e:
        logger.error("Presigning %s failed: %s", ref, e)
        raise ExternalServiceError("File storage unavailable") from e
