"""Storage backends."""

from .abstract_storage import AbstractStorage
from .file_store import FileStore
from .local_storage import LocalStorage

__all__ = ["AbstractStorage", "FileStore", "LocalStorage"]
