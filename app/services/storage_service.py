# app/services/storage_service.py
# Object storage for exam solution PDFs, student submissions and organization logos
#
# Backends:
#   GCS   -- when GCS_EXAM_BUCKET / GCS_LOGO_BUCKET is set (production)
#   Local -- files under STORAGE_LOCAL_DIR (development and tests)
#
# Stored references are object keys ("exams/<exam_id>/solution.pdf").
# Public URLs are accepted on download too: the key is the part after "/<bucket>/".

import logging
import os
from pathlib import Path

from app.core.config import settings

logger = logging.getLogger("aigrader.storage")

EXAM_BUCKET = "exam_files"
LOGO_BUCKET = "organization_logos"


class StorageError(Exception):
    """Upload or download against the object store failed."""


def object_key_from_reference(reference: str, bucket: str) -> str:
    """
    Accept either a bare object key or a full public URL and return the key.
    https://storage.googleapis.com/my-bucket/exams/1/solution.pdf → exams/1/solution.pdf
    """
    if reference.startswith(("http://", "https://")):
        marker = f"/{bucket}/"
        if marker not in reference:
            raise StorageError(f"Cannot locate bucket '{bucket}' in URL.")
        return reference.split(marker, 1)[1]
    return reference.lstrip("/")


def _gcs_bucket_name(bucket: str) -> str:
    if bucket == LOGO_BUCKET:
        return settings.gcs_logo_bucket
    return settings.gcs_exam_bucket


def _local_path(bucket: str, key: str) -> Path:
    root = Path(settings.storage_local_dir).resolve()
    path = (root / bucket / key).resolve()
    if root not in path.parents:
        raise StorageError("Object key escapes the storage directory.")
    return path


# ── Upload ────────────────────────────────────────────────────────────────────

def upload_bytes(bucket: str, key: str, data: bytes, content_type: str) -> str:
    """Store bytes and return the reference to persist on the row."""
    gcs_bucket = _gcs_bucket_name(bucket)
    if gcs_bucket:
        try:
            from google.cloud import storage as gcs

            client = gcs.Client()
            blob = client.bucket(gcs_bucket).blob(key)
            blob.upload_from_string(data, content_type=content_type)
        except Exception as e:
            logger.error(f"GCS upload failed for {gcs_bucket}/{key}: {e}")
            raise StorageError("File upload failed.") from e
        logger.info(f"Uploaded gs://{gcs_bucket}/{key} ({len(data)} bytes)")
        return key

    path = _local_path(bucket, key)
    try:
        os.makedirs(path.parent, exist_ok=True)
        path.write_bytes(data)
    except OSError as e:
        raise StorageError("File upload failed.") from e
    logger.info(f"[DEV] Stored {bucket}/{key} locally ({len(data)} bytes)")
    return key


def public_url(bucket: str, key: str) -> str:
    gcs_bucket = _gcs_bucket_name(bucket)
    if gcs_bucket:
        return f"https://storage.googleapis.com/{gcs_bucket}/{key}"
    return f"/storage/{bucket}/{key}"


# ── Download ──────────────────────────────────────────────────────────────────

def download_bytes(bucket: str, reference: str) -> bytes:
    key = object_key_from_reference(reference, _gcs_bucket_name(bucket) or bucket)
    gcs_bucket = _gcs_bucket_name(bucket)
    if gcs_bucket:
        try:
            from google.cloud import storage as gcs

            client = gcs.Client()
            return client.bucket(gcs_bucket).blob(key).download_as_bytes()
        except Exception as e:
            logger.error(f"GCS download failed for {gcs_bucket}/{key}: {e}")
            raise StorageError(f"Could not download file '{key}'.") from e

    path = _local_path(bucket, key)
    try:
        return path.read_bytes()
    except OSError as e:
        raise StorageError(f"Could not download file '{key}'.") from e
