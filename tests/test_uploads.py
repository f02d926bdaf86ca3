"""Tests for the generic upload endpoints and the file store."""

from __future__ import annotations

from io import BytesIO
from types import SimpleNamespace

import pytest

from storage import FileStore, LocalStorage
from utils.errors import NotFound, ValidationError


def test_upload_and_delete_round_trip(client, applicant, tmp_path):
    response = client.post(
        "/uploads",
        data={"file": (BytesIO(b"\x89PNG fake"), "receipt.png"), "directory": "payments"},
        headers=applicant.headers,
        content_type="multipart/form-data",
    )

    assert response.status_code == 201
    url = response.get_json()["data"]["file_url"]
    assert url.startswith(f"/uploads/users/{applicant.id}/payments/") and url.endswith(".png")
    stored = tmp_path / "uploads" / url[len("/uploads/"):]
    assert stored.read_bytes() == b"\x89PNG fake"

    download = client.get(url, headers=applicant.headers)
    assert download.status_code == 200
    assert download.data == b"\x89PNG fake"
    download.close()

    deleted = client.delete("/uploads", json={"file_url": url}, headers=applicant.headers)
    assert deleted.status_code == 200
    assert not stored.exists()

    again = client.delete("/uploads", json={"file_url": url}, headers=applicant.headers)
    assert again.status_code == 404


def test_upload_requires_authentication(client):
    response = client.post(
        "/uploads",
        data={"file": (BytesIO(b"data"), "receipt.png")},
        content_type="multipart/form-data",
    )

    assert response.status_code == 401


def test_upload_rejects_bad_directory(client, applicant):
    response = client.post(
        "/uploads",
        data={"file": (BytesIO(b"data"), "receipt.png"), "directory": "../etc"},
        headers=applicant.headers,
        content_type="multipart/form-data",
    )

    assert response.status_code == 400


def test_upload_rejects_oversized_file(client, app, applicant):
    app.config["MAX_UPLOAD_SIZE"] = 10

    response = client.post(
        "/uploads",
        data={"file": (BytesIO(b"x" * 11), "big.pdf")},
        headers=applicant.headers,
        content_type="multipart/form-data",
    )

    assert response.status_code == 400
    assert "maximum upload size" in response.get_json()["message"]


def test_file_store_rejects_foreign_urls(tmp_path):
    store = FileStore(LocalStorage(str(tmp_path)), base_url="/uploads")

    with pytest.raises(ValidationError):
        store.delete("https://elsewhere.example/file.png")
    with pytest.raises(ValidationError):
        store.delete("/uploads/../../secret.txt")
    with pytest.raises(NotFound):
        store.delete("/uploads/missing.png")


def test_file_store_normalizes_configured_types(tmp_path):
    store = FileStore(LocalStorage(str(tmp_path)), allowed_types="image/JPEG, .pdf")

    assert store.allowed_extensions == {"jpeg", "jpg", "pdf"}


def _upload_passport(client, actor, request_id: int) -> str:
    response = client.post(
        f"/visa/{request_id}/documents",
        data={"document_type": "passport", "document": (BytesIO(b"%PDF-1.4 scan"), "passport.pdf")},
        headers=actor.headers,
        content_type="multipart/form-data",
    )
    assert response.status_code == 201, response.get_json()
    return response.get_json()["data"]["document"]["document_url"]


def _stranger(create_user, auth_headers) -> SimpleNamespace:
    user_id = create_user("stranger@example.com")
    return SimpleNamespace(id=user_id, headers=auth_headers(user_id))


def test_request_documents_are_private_to_participants(
    client, app, applicant, admin, create_user, auth_headers, visa_flow, tmp_path
):
    stranger = _stranger(create_user, auth_headers)
    request_id = visa_flow.create(applicant)
    url = _upload_passport(client, applicant, request_id)

    denied_read = client.get(url, headers=stranger.headers)
    denied_delete = client.delete("/uploads", json={"file_url": url}, headers=stranger.headers)
    owner_read = client.get(url, headers=applicant.headers)
    admin_read = client.get(url, headers=admin.headers)

    assert denied_read.status_code == 403
    assert denied_delete.status_code == 403
    assert owner_read.status_code == 200
    assert owner_read.data == b"%PDF-1.4 scan"
    assert admin_read.status_code == 200
    owner_read.close()
    admin_read.close()
    assert (tmp_path / "uploads" / url[len("/uploads/"):]).is_file()


def test_attached_files_cannot_be_deleted(client, applicant, visa_flow, tmp_path):
    request_id = visa_flow.create(applicant)
    url = _upload_passport(client, applicant, request_id)

    response = client.delete("/uploads", json={"file_url": url}, headers=applicant.headers)

    assert response.status_code == 409
    assert response.get_json()["data"]["error"] == "Conflict"
    assert (tmp_path / "uploads" / url[len("/uploads/"):]).is_file()


def test_assigned_office_reads_request_documents(client, applicant, admin, office, visa_flow):
    request_id = visa_flow.create(applicant)
    url = _upload_passport(client, applicant, request_id)
    denied = client.get(url, headers=office.headers)

    visa_flow.upload_documents(applicant, request_id, types=("photo", "university_certificate"))
    visa_flow.pay(applicant, request_id)
    visa_flow.verify(admin, request_id)
    visa_flow.assign(admin, request_id, office.id)
    allowed = client.get(url, headers=office.headers)

    assert denied.status_code == 403
    assert allowed.status_code == 200
    allowed.close()


def test_generic_uploads_belong_to_the_uploader(client, applicant, create_user, auth_headers, tmp_path):
    stranger = _stranger(create_user, auth_headers)
    uploaded = client.post(
        "/uploads",
        data={"file": (BytesIO(b"\x89PNG fake"), "receipt.png")},
        headers=applicant.headers,
        content_type="multipart/form-data",
    )
    url = uploaded.get_json()["data"]["file_url"]

    assert client.get(url, headers=stranger.headers).status_code == 403
    response = client.delete("/uploads", json={"file_url": url}, headers=stranger.headers)
    assert response.status_code == 403
    assert (tmp_path / "uploads" / url[len("/uploads/"):]).is_file()


def test_cannot_attach_another_users_upload(client, applicant, create_user, auth_headers, visa_flow):
    stranger = _stranger(create_user, auth_headers)
    uploaded = client.post(
        "/uploads",
        data={"file": (BytesIO(b"%PDF-1.4 scan"), "passport.pdf")},
        headers=applicant.headers,
        content_type="multipart/form-data",
    )
    url = uploaded.get_json()["data"]["file_url"]
    stranger_request = visa_flow.create(stranger)

    response = client.post(
        f"/visa/{stranger_request}/documents",
        json={"document_type": "passport", "document_url": url},
        headers=stranger.headers,
    )

    assert response.status_code == 403
    own = client.post(
        f"/visa/{visa_flow.create(applicant)}/documents",
        json={"document_type": "passport", "document_url": url},
        headers=applicant.headers,
    )
    assert own.status_code == 201


def test_delete_rejects_dot_segments(client, applicant):
    response = client.delete(
        "/uploads",
        json={"file_url": f"/uploads/users/{applicant.id}/../../secret.txt"},
        headers=applicant.headers,
    )

    assert response.status_code == 400
    assert response.get_json()["data"]["error"] == "ValidationError"
