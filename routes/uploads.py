"""Generic file upload endpoints backed by the local file store."""

from __future__ import annotations

import re
from http import HTTPStatus

from flask import Blueprint, current_app, request, send_file
from werkzeug.datastructures import FileStorage

from services import files
from services.identity import authenticate
from storage import FileStore
from utils.errors import NotFound, ValidationError
from utils.request_validation import parse_json_request, required_string
from utils.responses import success

uploads_bp = Blueprint("uploads", __name__)

_DIRECTORY_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


@uploads_bp.route("", methods=["POST"])
def upload_file():
    """Store an uploaded file in the caller's own area and return its URL."""
    actor = authenticate(request)

    file = request.files.get("file")
    if not isinstance(file, FileStorage):
        raise ValidationError("A file is required.")

    directory = (request.form.get("directory") or "general").strip()
    if not _DIRECTORY_PATTERN.match(directory):
        raise ValidationError("directory may only contain letters, digits, '-' and '_'.")

    url = FileStore.from_app().save(file, files.user_directory(actor, directory))
    current_app.logger.info("User %s uploaded %s", actor.id, url)
    return success(
        "File uploaded successfully.",
        {"file_url": url, "file_name": file.filename},
        HTTPStatus.CREATED,
    )


@uploads_bp.route("", methods=["DELETE"])
def delete_file():
    actor = authenticate(request)
    payload = parse_json_request(request, required_keys=("file_url",))
    url = required_string(payload, "file_url")
    store = FileStore.from_app()
    files.ensure_can_delete(actor, store, url)
    store.delete(url)
    current_app.logger.info("User %s deleted %s", actor.id, url)
    return success("File deleted successfully.")


@uploads_bp.route("/<path:stored_path>", methods=["GET"])
def download_file(stored_path: str):
    """Serve a stored upload to its owner, an admin, or a participant of its request."""
    actor = authenticate(request)
    store = FileStore.from_app()
    files.ensure_can_read(actor, store, stored_path)
    if not store.backend.exists(stored_path):
        raise NotFound("File not found.")
    return send_file(store.backend.open(stored_path), download_name=stored_path.rsplit("/", 1)[-1])
