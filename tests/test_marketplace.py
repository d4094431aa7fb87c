from datetime import datetime

import pytest

from iger import auth, delivery, freshness, marketplace

BUYER = {"id": "u1", "role": "user"}
PANGKALAN = {"id": "p1", "role": "pangkalan"}

CART = [
    {"product_id": "a", "quantity": 2, "unit_price": 35000, "total_price": 70000},
    {"product_id": "b", "quantity": 1.5, "unit_price": 40000, "total_price": 60000},
]


@pytest.fixture
def as_user(monkeypatch):
    def install(user):
        monkeypatch.setattr(auth, "fetch_account", lambda jwt: user)
        return {"Authorization": "Bearer jwt"}

    return install


def test_cart_summary():
    summary = marketplace.cart_summary(CART)
    assert summary["totalItems"] == 2
    assert summary["totalQuantity"] == pytest.approx(3.5)
    assert summary["totalAmount"] == pytest.approx(130000)
    assert marketplace.cart_summary([])["totalAmount"] == 0


def test_line_total():
    assert marketplace.line_total("3", 12500) == 37500


def test_cart_summary_prices_items_without_total():
    summary = marketplace.cart_summary([
        {"product_id": "a", "quantity": 2, "unit_price": 35000},
        {"product_id": "b", "quantity": "1.5", "unit_price": 40000, "total_price": None},
        CART[0],
    ])
    assert summary["totalAmount"] == pytest.approx(200000)


def test_validate_product():
    assert marketplace.validate_product({"name": "Tongkol", "category": "laut", "price": 30000, "unit": "kg", "stock": 0}) == []
    errors = marketplace.validate_product({"name": " ", "price": 0, "stock": -1})
    assert errors == [
        "Nama produk harus diisi",
        "Kategori harus diisi",
        "Harga harus lebih dari 0",
        "Unit harus diisi",
        "Stok tidak boleh negatif",
    ]


def test_validate_driver():
    assert marketplace.validate_driver({"name": "Budi", "phone": "0812"}) == [
        "Nomor SIM harus diisi",
        "Jenis kendaraan harus diisi",
        "Nomor kendaraan harus diisi",
    ]


def test_validate_address():
    address = {"label": "Rumah", "recipient_name": "Sari", "phone": "0812", "full_address": "Jl. Melati 1"}
    assert marketplace.validate_address(address) == []
    assert marketplace.validate_address(dict(address, postal_code="40a12")) == ["Kode pos harus berupa angka"]
    assert "Alamat lengkap harus diisi" in marketplace.validate_address(dict(address, full_address=""))


def test_validate_stock():
    result = marketplace.validate_stock(
        [{"product_id": "a", "quantity": 2}, {"product_id": "b", "quantity": 5}, {"product_id": "c", "quantity": 1}],
        {"a": {"name": "Kakap", "stock": 10}, "b": {"name": "Bandeng", "stock": 3}},
    )
    assert result["isValid"] is False
    assert [item["product_id"] for item in result["invalidItems"]] == ["b", "c"]
    assert result["invalidItems"][0]["product_name"] == "Bandeng"


@pytest.mark.parametrize("amount, expected", [
    (15000, "Rp 15.000"),
    (0, "Rp 0"),
    (1234567.6, "Rp 1.234.568"),
    (-2500, "-Rp 2.500"),
])
def test_format_currency(amount, expected):
    assert marketplace.format_currency(amount) == expected


def test_freshness_badge():
    assert freshness.freshness_badge("Sangat Segar") == "emerald"
    assert freshness.freshness_badge("Kurang Segar") == "orange"
    assert freshness.freshness_badge(None) == "gray"


def test_scan_stats():
    now = datetime(2025, 6, 30, 12, 0, 0)
    scans = [
        {"freshness": "Sangat Segar", "$createdAt": "2025-06-29T08:00:00.000+00:00"},
        {"freshness": "Cukup Segar", "$createdAt": "2025-06-10T08:00:00.000+00:00"},
        {"freshness": "Tidak Segar", "$createdAt": "2025-03-01T08:00:00"},
        {"freshness": "Segar"},
    ]
    stats = freshness.scan_stats(scans, now=now)
    assert stats == {
        "total": 4,
        "this_week": 1,
        "this_month": 2,
        "sangat_segar": 1,
        "cukup_segar": 1,
        "kurang_segar": 0,
        "segar": 1,
        "tidak_segar": 1,
    }


def test_scan_stats_counts_classifier_results():
    scans = [freshness.build_result("fresh", 0.9), freshness.build_result("busuk", 0.8), freshness.build_result("Fresh fish", 0.7)]
    stats = freshness.scan_stats(scans)
    assert stats["segar"] == 2
    assert stats["tidak_segar"] == 1
    levels = sum(stats[level.lower().replace(" ", "_")] for level in freshness.FRESHNESS_LEVELS)
    assert levels == stats["total"] == 3


def test_eta():
    assert delivery.estimate_minutes((-6.20, 106.80), (-6.21, 106.80)) == 10
    assert delivery.estimate_minutes((-6.2, 106.8), (-6.2, 106.8)) == 5
    assert delivery.estimated_arrival(None, (-6.2, 106.8)) == "Menghitung..."
    assert delivery.estimated_arrival((-6.2, 106.8), (-6.23, 106.84)) == "50 menit"
    assert delivery.map_center((0, 0), (2, 4)) == (1, 2)


def test_eta_endpoint(client):
    resp = client.post("/api/delivery/eta", json={"driver": [-6.2, 106.8], "destination": [-6.23, 106.84]})
    assert resp.status_code == 200
    body = resp.json()
    assert body["estimate"] == "50 menit"
    assert body["minutes"] == 50
    assert body["center"] == pytest.approx([-6.215, 106.82])


def test_eta_endpoint_pending_and_invalid(client):
    assert client.post("/api/delivery/eta", json={"driver": [-6.2, 106.8]}).json()["estimate"] == "Menghitung..."
    assert client.post("/api/delivery/eta", json={"driver": [95, 0], "destination": [0, 0]}).status_code == 400


def test_cart_summary_endpoint(client, as_user):
    resp = client.post("/api/buyer/cart/summary", json={"items": CART}, headers=as_user(BUYER))
    assert resp.status_code == 200
    assert resp.json()["totalAmountFormatted"] == "Rp 130.000"


def test_buyer_endpoints_reject_pangkalan(client, as_user):
    resp = client.post("/api/buyer/cart/summary", json={"items": CART}, headers=as_user(PANGKALAN))
    assert resp.status_code == 403


def test_stock_endpoint(client, as_user):
    resp = client.post(
        "/api/buyer/checkout/validate-stock",
        json={"items": [{"product_id": "a", "quantity": 2}], "products": {"a": {"stock": 1}}},
        headers=as_user(BUYER),
    )
    assert resp.json()["isValid"] is False


def test_scan_stats_endpoint(client, as_user):
    resp = client.post("/api/buyer/scans/stats", json={"scans": [{"freshness": "Kurang Segar"}]}, headers=as_user(BUYER))
    body = resp.json()
    assert body["stats"]["kurang_segar"] == 1
    assert body["badges"]["Tidak Segar"] == "red"
    assert body["badges"]["Segar"] == "emerald"


def test_address_endpoint(client, as_user):
    resp = client.post("/api/buyer/addresses/validate", json={"label": "Kantor"}, headers=as_user(BUYER))
    assert resp.json()["valid"] is False


def test_product_endpoint(client, as_user):
    headers = as_user(PANGKALAN)
    product = {"name": "Tuna", "category": "laut", "price": 80000, "unit": "kg", "stock": 4}
    assert client.post("/api/pangkalan/products/validate", json=product, headers=headers).json() == {"valid": True, "errors": []}


def test_driver_endpoint_requires_pangkalan(client, as_user):
    resp = client.post("/api/pangkalan/drivers/validate", json={"name": "Budi"}, headers=as_user(BUYER))
    assert resp.status_code == 403
    assert resp.json()["redirect"] == "/login"
