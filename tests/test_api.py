import httpx

from storefront.gateway import SyncPaymentsClient, get_gateway
from storefront.main import app as fastapi_app
from storefront.models import GalleryItem, Group, Profile


def seed_profile(session_factory, **fields):
    db = session_factory()
    profile = Profile(**fields)
    db.add(profile)
    db.commit()
    db.close()


def test_create_pix_payment_success(client, fake_gateway):
    response = client.post("/create-pix-payment", json={"amount": 29.9})

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "paymentCode": fake_gateway.create_body["paymentCode"],
        "paymentCodeBase64": "iVBORw0KGgo=",
        "transactionId": "tx_123",
        "status": "pending",
    }


def test_create_pix_payment_below_minimum(client, fake_gateway):
    response = client.post("/create-pix-payment", json={"amount": 0.5})

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Valor mínimo é R$ 1,00"}
    assert fake_gateway.requests == []


def test_auth_failure_returns_error_payload(client, fake_gateway):
    fake_gateway.auth_status = 500

    created = client.post("/create-pix-payment", json={"amount": 10})
    checked = client.post("/check-pix-payment", json={"transactionId": "tx_123"})

    assert created.status_code == 400
    assert created.json()["success"] is False
    assert checked.status_code == 400
    assert checked.json()["isPaid"] is False


def test_check_pix_payment_completed(client, fake_gateway):
    fake_gateway.transaction_status = "completed"

    response = client.post("/check-pix-payment", json={"transactionId": "tx_123"})

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "transactionId": "tx_123",
        "status": "completed",
        "isPaid": True,
        "rawStatus": {"data": {"status": "completed"}},
    }


def test_missing_credentials_is_generic_failure(client):
    fastapi_app.dependency_overrides[get_gateway] = lambda: SyncPaymentsClient(None, None)

    response = client.post("/create-pix-payment", json={"amount": 10})

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Serviço de pagamento indisponível"}


def test_age_gate_blocks_profile(client):
    assert client.get("/profile").status_code == 403
    assert client.post("/checkout").status_code == 403


def test_age_gate_decline_redirects(client):
    response = client.post("/age-verification", json={"confirmed": False})

    assert response.json() == {"verified": False, "redirect": "https://google.com"}
    assert client.get("/profile").status_code == 403


def test_profile_shows_blurred_previews_without_delivery_link(verified_client, session_factory):
    seed_profile(session_factory, name="Ana", price=19.9, delivery_link="https://secret.example/vip")
    db = session_factory()
    db.add_all([
        GalleryItem(type="photo", url="/media/photos/2.jpg", is_preview=True, display_order=2),
        GalleryItem(type="video", url="/media/videos/1.mp4", is_preview=True, display_order=1),
        GalleryItem(type="photo", url="/media/photos/hidden.jpg", is_preview=False, display_order=0),
    ])
    db.commit()
    db.close()

    response = verified_client.get("/profile")

    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Ana"
    assert body["price_label"] == "R$ 19,90"
    assert "delivery_link" not in body
    assert [item["url"] for item in body["preview"]] == ["/media/videos/1.mp4", "/media/photos/2.jpg"]
    assert all(item["blurred"] for item in body["preview"])


def test_profile_created_on_first_read(verified_client):
    body = verified_client.get("/profile").json()

    assert body["price"] == 29.9
    assert body["button_text"] == "Desbloquear Agora"


def test_groups_listing(verified_client, session_factory):
    db = session_factory()
    db.add(Group(name="Amigos BR - Geral", link="https://t.me/+exemplo1", members="5.2K"))
    db.commit()
    db.close()

    response = verified_client.get("/groups")

    assert response.status_code == 200
    assert response.json()[0]["members"] == "5.2K"


def test_checkout_unknown_id(verified_client):
    assert verified_client.get("/checkout/nope").status_code == 404
    assert verified_client.delete("/checkout/nope").status_code == 404


def test_checkout_confirm_from_failed_is_conflict(verified_client, fake_gateway):
    fake_gateway.create_status = 500
    checkout = verified_client.post("/checkout").json()
    assert checkout["state"] == "failed"

    response = verified_client.post(f"/checkout/{checkout['checkout_id']}/confirm")

    assert response.status_code == 409


def test_malformed_status_reply_is_error_payload(verified_client, fake_gateway):
    fake_gateway.overrides["/api/partner/v1/transaction/tx_123"] = (
        lambda: httpx.Response(200, json={"data": ["completed"]})
    )

    checked = verified_client.post("/check-pix-payment", json={"transactionId": "tx_123"})
    assert checked.status_code == 400
    assert checked.json()["isPaid"] is False

    checkout = verified_client.post("/checkout").json()
    failed = verified_client.post(f"/checkout/{checkout['checkout_id']}/confirm").json()
    assert failed["state"] == "failed"
    assert "delivery_link" not in failed

    del fake_gateway.overrides["/api/partner/v1/transaction/tx_123"]
    fake_gateway.transaction_status = "completed"
    unlocked = verified_client.post(f"/checkout/{checkout['checkout_id']}/retry").json()
    assert unlocked["state"] == "unlocked"
