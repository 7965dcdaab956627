import io

from conftest import ADMIN_EMAIL, quotation_input


def _create(admin_client, **overrides):
    resp = admin_client.post("/api/quotations", json=quotation_input(**overrides))
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["quotation"]


def _accept(admin_client, number):
    resp = admin_client.post(f"/api/quotations/{number}/status", json={"status": "accepted"})
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()


# -----------------
# Auth
# -----------------

def test_api_requires_login(client):
    resp = client.get("/api/quotations")
    assert resp.status_code == 401
    assert "error" in resp.get_json()


def test_staff_role_is_forbidden(staff_client):
    assert staff_client.get("/api/quotations").status_code == 403


def test_login_with_wrong_password(client):
    resp = client.post("/auth/login", json={"email": ADMIN_EMAIL, "password": "nope-nope"})
    assert resp.status_code == 401


def test_login_validation_error(client):
    resp = client.post("/auth/login", json={"email": "not-an-email"})
    assert resp.status_code == 400
    assert "password" in resp.get_json()["details"]


def test_logout(admin_client):
    assert admin_client.post("/auth/logout").status_code == 200
    assert admin_client.get("/api/quotations").status_code == 401


def test_csrf_token_endpoint(client):
    assert client.get("/auth/csrf").get_json()["csrf_token"]


# -----------------
# Quotations
# -----------------

def test_create_get_and_list_quotations(admin_client):
    q = _create(admin_client)
    assert q["number"] == "QT00001" and q["status"] == "pending"

    detail = admin_client.get("/api/quotations/QT00001").get_json()["quotation"]
    assert detail["client_phone"] == "9876543210"

    listing = admin_client.get("/api/quotations?page=1&per_page=5").get_json()
    assert listing["total"] == 1
    assert listing["quotations"][0]["number"] == "QT00001"


def test_invalid_quotation_returns_field_errors(admin_client):
    resp = admin_client.post("/api/quotations", json=quotation_input(client_phone="123", line_items=[]))
    assert resp.status_code == 400
    fields = {d["field"] for d in resp.get_json()["details"]}
    assert {"client_phone", "line_items"} <= fields


def test_unknown_quotation_is_404(admin_client):
    assert admin_client.get("/api/quotations/QT00042").status_code == 404


def test_patch_with_stale_if_match_is_409(admin_client):
    q = _create(admin_client)
    ok = admin_client.patch("/api/quotations/QT00001", json={"note": "one"}, headers={"If-Match": str(q["version"])})
    assert ok.status_code == 200
    stale = admin_client.patch("/api/quotations/QT00001", json={"note": "two"}, headers={"If-Match": str(q["version"])})
    assert stale.status_code == 409


def test_accept_returns_project_and_invoice(admin_client):
    _create(admin_client)
    body = _accept(admin_client, "QT00001")
    assert body["project"]["project_id"] == "PRJ00001"
    assert body["invoice"]["invoice_id"] == "INV00001"
    assert body["warnings"] == []

    again = _accept(admin_client, "QT00001")
    assert "project" not in again


def test_put_discount_resets_status(admin_client):
    _create(admin_client)
    _accept(admin_client, "QT00001")
    body = admin_client.put("/api/quotations/QT00001", json={"discount": 500}).get_json()
    assert body["quotation"]["status"] == "pending"


def test_delete_quotation(admin_client):
    _create(admin_client)
    _accept(admin_client, "QT00001")
    resp = admin_client.delete("/api/quotations/QT00001")
    assert resp.status_code == 200
    assert admin_client.get("/api/projects/PRJ00001").status_code == 404
    assert admin_client.delete("/api/quotations/QT00001").status_code == 404


# -----------------
# Projects, invoices, payments
# -----------------

def test_project_payment_flow(admin_client):
    _create(admin_client)
    _accept(admin_client, "QT00001")

    resp = admin_client.post("/api/projects/PRJ00001/payments", json={"amount": 4000, "note": "advance"})
    assert resp.status_code == 201
    assert resp.get_json()["project"]["amount_due"] == 6000

    over = admin_client.post("/api/invoices/INV00001/payments", json={"amount": 7000})
    assert over.status_code == 400

    invoice = admin_client.get("/api/invoices/INV00001").get_json()["invoice"]
    assert invoice["amount_due"] == 6000
    assert invoice["access_token"]

    projects = admin_client.get("/api/projects?status=ongoing").get_json()
    assert projects["total"] == 1
    assert admin_client.get("/api/projects?status=bogus").status_code == 400
    assert admin_client.get("/api/invoices").get_json()["total"] == 1


def test_project_patch_and_delete(admin_client):
    _create(admin_client)
    _accept(admin_client, "QT00001")
    resp = admin_client.patch("/api/projects/PRJ00001", json={"note": "Second floor first"})
    assert resp.status_code == 200
    assert resp.get_json()["invoice"]["note"] == "Second floor first"

    assert admin_client.delete("/api/projects/PRJ00001").status_code == 200
    assert admin_client.get("/api/invoices/INV00001").status_code == 404
    assert admin_client.get("/api/quotations/QT00001").status_code == 200


def test_site_image_upload(admin_client, assets):
    _create(admin_client)
    _accept(admin_client, "QT00001")
    resp = admin_client.post(
        "/api/projects/PRJ00001/images",
        data={"image": (io.BytesIO(b"\x89PNG"), "site.png"), "description": "Before"},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 201
    assert resp.get_json()["project"]["site_images"][0]["public_id"] == "PRJ00001/site.png"
    assert admin_client.post("/api/projects/PRJ00001/images", data={}).status_code == 400


def test_audit_log_listing(admin_client):
    _create(admin_client)
    _accept(admin_client, "QT00001")
    logs = admin_client.get("/api/audit-logs").get_json()
    assert logs["total"] == 2
    assert [e["action"] for e in logs["logs"]] == ["update_quotation_status", "create_quotation"]


# -----------------
# Public and health
# -----------------

def test_public_invoice_view(admin_client, client):
    _create(admin_client)
    _accept(admin_client, "QT00001")
    token = admin_client.get("/api/invoices/INV00001").get_json()["invoice"]["access_token"]

    resp = client.get(f"/invoice/INV00001?token={token}")
    assert resp.status_code == 200
    body = resp.get_json()["invoice"]
    assert body["invoice_id"] == "INV00001"
    assert "access_token" not in body
    assert resp.headers["Cache-Control"] == "no-store"

    assert client.get("/invoice/INV00001?token=wrong").status_code == 404
    assert client.get("/invoice/INV00001").status_code == 404


def test_status_endpoint(client):
    body = client.get("/status").get_json()
    assert body["checks"]["database"] == "ok"


def test_public_invoice_accepts_token_header(admin_client, client):
    _create(admin_client)
    _accept(admin_client, "QT00001")
    token = admin_client.get("/api/invoices/INV00001").get_json()["invoice"]["access_token"]

    resp = client.get("/invoice/INV00001", headers={"X-Invoice-Token": token})
    assert resp.status_code == 200
    assert resp.get_json()["invoice"]["invoice_id"] == "INV00001"
    assert client.get("/invoice/INV00001", headers={"X-Invoice-Token": "wrong"}).status_code == 404


# -----------------
# Empty updates
# -----------------

def test_empty_or_non_object_quotation_patch_is_rejected(admin_client):
    _create(admin_client)
    not_object = admin_client.patch("/api/quotations/QT00001", json=[])
    assert not_object.status_code == 400
    assert not_object.get_json()["error"] == "Expected a JSON object"

    empty = admin_client.patch("/api/quotations/QT00001", json={})
    assert empty.status_code == 400
    assert empty.get_json()["error"] == "Nothing to update"

    logs = admin_client.get("/api/audit-logs").get_json()
    assert [e["action"] for e in logs["logs"]] == ["create_quotation"]


def test_empty_project_patch_is_rejected(admin_client):
    _create(admin_client)
    _accept(admin_client, "QT00001")
    assert admin_client.patch("/api/projects/PRJ00001", json=[]).status_code == 400
    resp = admin_client.patch("/api/projects/PRJ00001", json={})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Nothing to update"
    assert admin_client.get("/api/audit-logs").get_json()["total"] == 2


# -----------------
# Dashboard
# -----------------

def test_dashboard_stats(admin_client):
    _create(admin_client)
    _create(admin_client)
    _create(admin_client)
    _accept(admin_client, "QT00001")
    admin_client.post("/api/quotations/QT00002/status", json={"status": "rejected"})

    stats = admin_client.get("/api/dashboard/stats").get_json()
    assert stats == {
        "quotations": {"total": 3, "pending": 1, "accepted": 1, "rejected": 1},
        "projects": {"total": 1},
        "invoices": {"total": 1},
    }


def test_dashboard_stats_is_admin_only(staff_client, client):
    assert staff_client.get("/api/dashboard/stats").status_code == 403
    assert client.get("/api/dashboard/stats").status_code == 401
