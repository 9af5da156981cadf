import asyncio

import pytest

from fitmate.core.config import settings
from fitmate.models import PaymentProof
from fitmate.utils.storage import LocalProofStore

API = "/api/v1/payments"

IMAGE = b"\x89PNG\r\n\x1a\nfake-image-data"


def upload(client, image=IMAGE, filename="slip.png", content_type="image/png", **fields):
    files = {"paymentImage": (filename, image, content_type)} if image is not None else None
    return client.post(API, files=files, data={k: str(v) for k, v in fields.items()})


@pytest.fixture
def make_proof(db):
    def _make_proof(user=None, amount: int = 1000, storage_key: str = "seeded.png") -> PaymentProof:
        proof = PaymentProof(
            user_id=user.id if user else None,
            amount=amount,
            filename="slip.png",
            mime_type="image/png",
            storage_key=storage_key,
        )
        db.add(proof)
        db.commit()
        return proof

    return _make_proof


class TestUploadProof:
    def test_file_required(self, client, proof_store, member):
        response = upload(client, image=None, userId=member.id, amount=1000, note="Test payment")
        assert response.status_code == 400
        assert "paymentImage file is required" in response.json()["message"]

    def test_unknown_user(self, client, proof_store):
        response = upload(client, userId=999999, amount=1000)
        assert response.status_code == 404
        assert "User not found" in response.json()["message"]
        assert proof_store.files == {}

    def test_user_id_not_a_number(self, client, proof_store):
        response = upload(client, userId="invalid", amount=1000)
        assert response.status_code == 400
        assert "must be a number" in response.json()["message"]

    def test_amount_not_a_number(self, client, proof_store, member):
        response = upload(client, userId=member.id, amount="invalid")
        assert response.status_code == 400
        assert "must be a number" in response.json()["message"]

    def test_amount_required(self, client, proof_store):
        response = upload(client)
        assert response.status_code == 400
        assert response.json()["message"] == "amount is required"

    def test_rejects_non_image(self, client, proof_store):
        response = upload(client, image=b"%PDF-1.4", filename="slip.pdf", content_type="application/pdf", amount=1000)
        assert response.status_code == 400
        assert "must be an image" in response.json()["message"]

    def test_rejects_oversized_image(self, client, proof_store, monkeypatch):
        monkeypatch.setattr(settings, "MAX_PAYMENT_PROOF_BYTES", 8)
        response = upload(client, amount=1000)
        assert response.status_code == 400
        assert "limit" in response.json()["message"]
        assert proof_store.files == {}

    def test_upload_for_user(self, client, db, proof_store, member):
        response = upload(client, userId=member.id, amount=1500, note="Test payment note")
        assert response.status_code == 201
        body = response.json()
        assert "id" in body
        assert body["userId"] == member.id
        assert body["amount"] == 1500
        assert body["note"] == "Test payment note"
        assert body["filename"] == "slip.png"
        assert body["mimeType"] == "image/png"

        stored = db.get(PaymentProof, body["id"])
        assert proof_store.files[stored.storage_key] == IMAGE

    def test_upload_without_user(self, client, proof_store):
        response = upload(client, amount=2000)
        assert response.status_code == 201
        body = response.json()
        assert body["userId"] is None
        assert body["amount"] == 2000

    def test_client_path_is_dropped_from_filename(self, client, proof_store):
        response = upload(client, filename="../../etc/slip.png", amount=500)
        assert response.status_code == 201
        assert response.json()["filename"] == "slip.png"


class TestListProofs:
    def test_requires_token(self, client):
        response = client.get(API)
        assert response.status_code == 401
        assert "Missing" in response.json()["message"]

    def test_members_forbidden(self, client, member, auth_headers):
        response = client.get(API, headers=auth_headers(member))
        assert response.status_code == 403
        assert "Only admins" in response.json()["message"]

    def test_admin_lists_all(self, client, admin, member, auth_headers, make_proof):
        make_proof(member, storage_key="a.png")
        make_proof(None, amount=2000, storage_key="b.png")
        response = client.get(API, headers=auth_headers(admin))
        assert response.status_code == 200
        assert len(response.json()) == 2
        assert {"id", "userId", "amount"} <= set(response.json()[0])

    def test_filter_by_user(self, client, admin, member, auth_headers, make_proof):
        make_proof(member, storage_key="a.png")
        make_proof(None, storage_key="b.png")
        response = client.get(API, params={"userId": member.id}, headers=auth_headers(admin))
        assert response.status_code == 200
        assert [p["userId"] for p in response.json()] == [member.id]

    def test_filter_not_a_number(self, client, admin, auth_headers):
        response = client.get(API, params={"userId": "invalid"}, headers=auth_headers(admin))
        assert response.status_code == 400
        assert "must be a valid number" in response.json()["message"]

    def test_all_route(self, client, admin, member, auth_headers, make_proof):
        make_proof(member, storage_key="a.png")
        response = client.get(f"{API}/all", headers=auth_headers(admin))
        assert response.status_code == 200
        assert len(response.json()) == 1

    def test_all_route_members_forbidden(self, client, member, auth_headers):
        response = client.get(f"{API}/all", headers=auth_headers(member))
        assert response.status_code == 403


class TestProofImage:
    def test_requires_token(self, client, proof_store):
        response = client.get(f"{API}/1/image")
        assert response.status_code == 401
        assert "Missing" in response.json()["message"]

    def test_members_forbidden(self, client, proof_store, member, auth_headers):
        response = client.get(f"{API}/1/image", headers=auth_headers(member))
        assert response.status_code == 403

    def test_invalid_id(self, client, proof_store, admin, auth_headers):
        response = client.get(f"{API}/invalid/image", headers=auth_headers(admin))
        assert response.status_code == 400
        assert "valid number" in response.json()["message"]

    def test_not_found(self, client, proof_store, admin, auth_headers):
        response = client.get(f"{API}/999999/image", headers=auth_headers(admin))
        assert response.status_code == 404
        assert "not found" in response.json()["message"]

    def test_admin_downloads_image(self, client, proof_store, admin, member, auth_headers):
        proof_id = upload(client, userId=member.id, amount=3000).json()["id"]
        response = client.get(f"{API}/{proof_id}/image", headers=auth_headers(admin))
        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.content == IMAGE

    def test_missing_from_store(self, client, proof_store, admin, auth_headers, make_proof):
        proof = make_proof(storage_key="gone.png")
        response = client.get(f"{API}/{proof.id}/image", headers=auth_headers(admin))
        assert response.status_code == 404


class TestLocalProofStore:
    def test_save_load_delete(self, tmp_path):
        store = LocalProofStore(str(tmp_path / "proofs"))

        async def roundtrip():
            await store.save("abc.png", IMAGE)
            loaded = await store.load("abc.png")
            await store.delete("abc.png")
            return loaded, await store.load("abc.png")

        loaded, after_delete = asyncio.run(roundtrip())
        assert loaded == IMAGE
        assert after_delete is None

    def test_key_cannot_escape_root(self, tmp_path):
        store = LocalProofStore(str(tmp_path / "proofs"))
        with pytest.raises(ValueError):
            asyncio.run(store.save("../outside.png", IMAGE))
