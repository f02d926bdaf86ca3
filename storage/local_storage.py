"""Local filesystem storage implementation."""

from __future__ import annotations

import os
from pathlib import Path
from typing import IO, BinaryIO

from werkzeug.utils import secure_filename

from config import Config

from .abstract_storage import AbstractStorage


class LocalStorage(AbstractStorage):
    """Persist files to the local filesystem under the configured upload directory."""

    def __init__(self, upload_dir: str | None = None):
        self.base_directory = Path(upload_dir or Config.UPLOAD_DIR)
        os.makedirs(self.base_directory, exist_ok=True)

    def _resolve(self, path: str) -> Path:
        candidate = (self.base_directory / path).resolve()
        base = self.base_directory.resolve()
        if candidate != base and base not in candidate.parents:
            raise ValueError("Path escapes the upload directory.")
        return candidate

    def save(self, file_obj: IO[bytes], filename: str, directory: str | None = None) -> str:
        """Save a file and return the relative path within the upload directory."""

        safe_name = secure_filename(filename)
        if not safe_name:
            raise ValueError("Filename must contain at least one valid character.")

        target_dir = self.base_directory
        if directory:
            segments = [secure_filename(part) for part in directory.split("/") if part]
            if not segments or not all(segments):
                raise ValueError("Directory must contain at least one valid character.")
            target_dir = target_dir.joinpath(*segments)
            os.makedirs(target_dir, exist_ok=True)

        destination = target_dir / safe_name
        if hasattr(file_obj, "save"):
            file_obj.save(destination)  # type: ignore[arg-type]
        else:
            with open(destination, "wb") as output:
                output.write(file_obj.read())

        return destination.relative_to(self.base_directory).as_posix()

    def exists(self, path: str) -> bool:
        """Return True if the given relative path exists within the upload directory."""

        try:
            return self._resolve(path).is_file()
        except ValueError:
            return False

    def open(self, path: str, mode: str = "rb") -> BinaryIO:
        """Open a stored file using the provided mode."""

        return open(self._resolve(path), mode)

    def delete(self, path: str) -> bool:
        """Remove a stored file; raises ValueError for paths outside the upload directory."""

        target = self._resolve(path)
        if not target.is_file():
            return False
        target.unlink()
        return True
