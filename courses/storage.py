"""Material file storage on top of Django's storage API.

The backend is whatever ``STORAGES["default"]`` points to: the local file
system in development, ``S3Boto3Storage`` from django-storages when
``USE_S3_MEDIA`` is enabled.
"""

from __future__ import annotations

import logging
import posixpath
import uuid

from botocore.exceptions import BotoCoreError, ClientError
from django.core.files.storage import Storage, default_storage

from courses import conf
from courses.results import InvalidInputError, StorageError

logger = logging.getLogger(__name__)

_STORAGE_ERRORS = (OSError, BotoCoreError, ClientError)


class MaterialStorage:
    def __init__(self, storage: Storage | None = None):
        self.storage = storage if storage is not None else default_storage

    def build_key(self, filename: str) -> str:
        extension = posixpath.splitext(filename or "")[1].lower()
        return f"{conf.materials_prefix()}{uuid.uuid4().hex}{extension}"

    def upload_file(self, uploaded_file) -> str:
        """Store ``uploaded_file`` and return the key it was saved under."""
        if uploaded_file is None:
            raise InvalidInputError("File is required")
        key = self.build_key(getattr(uploaded_file, "name", ""))
        try:
            stored = self.storage.save(key, uploaded_file)
        except _STORAGE_ERRORS as exc:
            logger.exception("Failed to upload material %s", key)
            raise StorageError(f"Failed to upload file: {exc}") from exc
        logger.info("Uploaded material file %s", stored)
        return stored

    def delete_file(self, path: str) -> None:
        if not path:
            raise InvalidInputError("File path is required")
        try:
            self.storage.delete(path)
        except _STORAGE_ERRORS as exc:
            logger.exception("Failed to delete material file %s", path)
            raise StorageError(f"Failed to delete file {path}: {exc}") from exc
        logger.info("Deleted material file %s", path)

    def exists(self, path: str) -> bool:
        return bool(path) and self.storage.exists(path)

    def iter_files(self, prefix: str):
        """Yield every stored key below ``prefix``."""
        pending = [prefix]
        seen = set()
        while pending:
            current = pending.pop()
            if current in seen:
                continue
            seen.add(current)
            try:
                dirs, files = self.storage.listdir(current)
            except FileNotFoundError:
                continue
            for name in files:
                yield posixpath.join(current, name)
            for name in dirs:
                pending.append(posixpath.join(current, name))
