"""File store capability: validate, persist, and address uploaded files by URL."""

from __future__ import annotations

import os
import uuid
from pathlib import Path
from typing import Iterable

from flask import current_app
from werkzeug.datastructures import FileStorage

from utils.errors import NotFound, ValidationError

from .abstract_storage import AbstractStorage
from .local_storage import LocalStorage

MAX_UPLOAD_SIZE_DEFAULT = 5 * 1024 * 1024  # 5 MB
ALLOWED_EXTENSIONS_DEFAULT = {"jpeg", "jpg", "png", "pdf"}


def normalize_extensions(configured: str | Iterable[str] | None) -> set[str]:
    """Normalize a configured list of extensions or MIME types to bare extensions."""

    if not configured:
        return set(ALLOWED_EXTENSIONS_DEFAULT)
    if isinstance(configured, str):
        values: Iterable[str] = configured.split(",")
    else:
        values = configured

    normalized: set[str] = set()
    for raw in values:
        if not isinstance(raw, str):
            continue

        item = raw.strip().lower()
        if not item:
            continue

        if "/" in item and not item.startswith("."):
            item = item.rsplit("/", 1)[-1]

        item = item.lstrip(".")
        if item:
            normalized.add(item)

    if not normalized:
        return set(ALLOWED_EXTENSIONS_DEFAULT)
    if "jpeg" in normalized:
        normalized.add("jpg")
    if "jpg" in normalized:
        normalized.add("jpeg")
    return normalized


def build_unique_filename(original: str) -> str:
    suffix = Path(original).suffix.lower()
    return f"{uuid.uuid4().hex}{suffix}"


class FileStore:
    """Stores uploads in a storage backend and exposes them under a base URL."""

    def __init__(
        self,
        backend: AbstractStorage,
        base_url: str = "/uploads",
        allowed_types: str | Iterable[str] | None = None,
        max_size: int = MAX_UPLOAD_SIZE_DEFAULT,
    ):
        self.backend = backend
        self.base_url = base_url.rstrip("/")
        self.allowed_extensions = normalize_extensions(allowed_types)
        self.max_size = max_size

    @classmethod
    def from_app(cls) -> "FileStore":
        config = current_app.config
        return cls(
            LocalStorage(config.get("UPLOAD_DIR")),
            base_url=config.get("UPLOAD_BASE_URL", "/uploads"),
            allowed_types=config.get("ALLOWED_UPLOAD_TYPES"),
            max_size=int(config.get("MAX_UPLOAD_SIZE", MAX_UPLOAD_SIZE_DEFAULT)),
        )

    def validate(self, file: FileStorage) -> None:
        if file.filename is None or file.filename.strip() == "":
            raise ValidationError("A file is required.")

        extension = file.filename.rsplit(".", 1)[-1].lower() if "." in file.filename else ""
        if extension not in self.allowed_extensions:
            allowed = ", ".join(sorted(self.allowed_extensions))
            raise ValidationError(f"File type not allowed. Allowed types: {allowed}.")

        file.stream.seek(0, os.SEEK_END)
        size = file.stream.tell()
        file.stream.seek(0)
        if size > self.max_size:
            limit_mb = self.max_size // (1024 * 1024)
            raise ValidationError(f"File exceeds the maximum upload size of {limit_mb}MB.")

    def save(self, file: FileStorage, directory: str | None = None) -> str:
        """Validate and persist an upload, returning its public URL."""

        self.validate(file)
        stored_path = self.backend.save(
            file, build_unique_filename(file.filename or "upload"), directory
        )
        return self.url_for(stored_path)

    def url_for(self, stored_path: str) -> str:
        return f"{self.base_url}/{stored_path}"

    def path_for(self, url: str) -> str | None:
        prefix = f"{self.base_url}/"
        if not url or not url.startswith(prefix):
            return None
        return url[len(prefix):]

    def delete(self, url: str) -> None:
        path = self.path_for(url)
        if path is None:
            raise ValidationError("Invalid file URL.")
        try:
            deleted = self.backend.delete(path)
        except ValueError as exc:
            raise ValidationError("Invalid file URL.") from exc
        if not deleted:
            raise NotFound("File not found.")
