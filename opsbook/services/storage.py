"""Attachment storage for receipts, payment slips and vendor invoices."""

from __future__ import annotations

import logging
import re
import uuid
from pathlib import Path

from fastapi import HTTPException, status

from opsbook.core.config import get_settings

logger = logging.getLogger(__name__)

RECEIPTS_BUCKET = "receipts"
COMPANY_INCOME_BUCKET = "company-income"
BUCKETS = {RECEIPTS_BUCKET, COMPANY_INCOME_BUCKET}

KEY_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,254}$")
EXTENSION_RE = re.compile(r"^[A-Za-z0-9]{1,16}$")


class BlobStorage:
    """Local filesystem blob store laid out as ``<root>/<bucket>/<key>``."""

    def __init__(self, root: str | Path | None = None, public_base_url: str | None = None) -> None:
        settings = get_settings()
        self.root = Path(root if root is not None else settings.storage_root)
        self.public_base_url = (public_base_url or settings.storage_public_base_url).rstrip("/")

    @staticmethod
    def new_key(filename: str | None) -> str:
        """Random object key keeping the uploaded file's extension."""

        key = uuid.uuid4().hex
        if filename and "." in filename:
            extension = filename.rsplit(".", 1)[1].lower()
            if EXTENSION_RE.match(extension):
                return f"{key}.{extension}"
        return key

    def _path(self, bucket: str, key: str) -> Path:
        if bucket not in BUCKETS:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"Unknown storage bucket: {bucket}.",
            )
        if not KEY_RE.match(key) or ".." in key:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Invalid storage object key.",
            )
        return self.root / bucket / key

    def upload(self, bucket: str, key: str, data: bytes) -> str:
        path = self._path(bucket, key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.info("Stored %s/%s (%d bytes).", bucket, key, len(data))
        return key

    def download(self, bucket: str, key: str) -> bytes:
        path = self._path(bucket, key)
        if not path.is_file():
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Attachment not found.")
        return path.read_bytes()

    def remove(self, bucket: str, key: str) -> None:
        path = self._path(bucket, key)
        if path.is_file():
            path.unlink()
            logger.info("Removed %s/%s.", bucket, key)

    def public_url(self, bucket: str, key: str) -> str:
        self._path(bucket, key)
        return f"{self.public_base_url}/{bucket}/{key}"
