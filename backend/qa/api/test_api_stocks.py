"""
API tests - stock movements and transaction log
"""
from decimal import Decimal


def _qty(body):
    return Decimal(str(body["quantity"]))


class TestStockMovementsAPI:

    def test_receipt_then_get(self, client, seed):
        r = client.post("/stocks/receipt", json={
            "material_id": seed["m1"], "warehouse_id": seed["w1"], "quantity": "100", "unit_price": "3.20",
        })
        assert r.status_code == 200
        body = r.json()
        assert _qty(body) == Decimal("100")
        assert body["material_name"] == "Air filter"
        assert body["warehouse_name"] == "Central"

        r = client.get(f"/stocks/{seed['m1']}/{seed['w1']}")
        assert r.status_code == 200
        assert _qty(r.json()) == Decimal("100")

    def test_get_missing_stock_404(self, client, seed):
        r = client.get(f"/stocks/{seed['m1']}/{seed['w2']}")
        assert r.status_code == 404

    def test_receipt_invalid_quantity_400(self, client, seed):
        r = client.post("/stocks/receipt", json={"material_id": seed["m1"], "warehouse_id": seed["w1"], "quantity": "0"})
        assert r.status_code == 400

    def test_receipt_unknown_material_404(self, client, seed):
        r = client.post("/stocks/receipt", json={"material_id": 999, "warehouse_id": seed["w1"], "quantity": "1"})
        assert r.status_code == 404

    def test_issue_insufficient_400(self, client, seed):
        client.post("/stocks/receipt", json={"material_id": seed["m1"], "warehouse_id": seed["w1"], "quantity": "5"})
        r = client.post("/stocks/issue", json={"material_id": seed["m1"], "warehouse_id": seed["w1"], "quantity": "6"})
        assert r.status_code == 400
        assert "Insufficient stock" in r.json()["detail"]

    def test_transfer_returns_destination(self, client, seed):
        client.post("/stocks/receipt", json={"material_id": seed["m1"], "warehouse_id": seed["w1"], "quantity": "10"})
        r = client.post("/stocks/transfer", json={
            "material_id": seed["m1"], "from_warehouse_id": seed["w1"], "to_warehouse_id": seed["w2"], "quantity": "4",
        })
        assert r.status_code == 200
        assert r.json()["warehouse_id"] == seed["w2"]
        assert _qty(r.json()) == Decimal("4")

    def test_transfer_same_warehouse_400(self, client, seed):
        r = client.post("/stocks/transfer", json={
            "material_id": seed["m1"], "from_warehouse_id": seed["w1"], "to_warehouse_id": seed["w1"], "quantity": "1",
        })
        assert r.status_code == 400

    def test_adjust(self, client, seed):
        client.post("/stocks/receipt", json={"material_id": seed["m2"], "warehouse_id": seed["w1"], "quantity": "20"})
        r = client.post("/stocks/adjust", json={
            "material_id": seed["m2"], "warehouse_id": seed["w1"], "new_quantity": "8", "remarks": "cycle count",
        })
        assert r.status_code == 200
        assert _qty(r.json()) == Decimal("8")

        r = client.get("/stocks", params={"low_stock": True})
        assert [s["material_id"] for s in r.json()] == [seed["m2"]]

    def test_adjust_negative_400(self, client, seed):
        r = client.post("/stocks/adjust", json={
            "material_id": seed["m2"], "warehouse_id": seed["w1"], "new_quantity": "-1", "remarks": "x",
        })
        assert r.status_code == 400


class TestTransactionsAPI:

    def test_list_paged_newest_first(self, client, seed):
        for q in ("1", "2", "3"):
            client.post("/stocks/receipt", json={"material_id": seed["m1"], "warehouse_id": seed["w1"], "quantity": q})

        r = client.get("/stocks/transactions", params={"take": 2})
        assert r.status_code == 200
        body = r.json()
        assert body["total"] == 3
        assert body["page"] == 1 and body["page_size"] == 2
        assert [Decimal(str(t["quantity"])) for t in body["items"]] == [Decimal("3"), Decimal("2")]
        assert body["items"][0]["transaction_type"] == "RECEIPT"
        assert body["items"][0]["to_warehouse_name"] == "Central"

    def test_filter_by_type_and_warehouse(self, client, seed):
        client.post("/stocks/receipt", json={"material_id": seed["m1"], "warehouse_id": seed["w1"], "quantity": "5"})
        client.post("/stocks/transfer", json={
            "material_id": seed["m1"], "from_warehouse_id": seed["w1"], "to_warehouse_id": seed["w2"], "quantity": "5",
        })
        r = client.get("/stocks/transactions", params={"warehouse_id": seed["w2"]})
        assert [t["transaction_type"] for t in r.json()["items"]] == ["TRANSFER"]

        r = client.get("/stocks/transactions", params={"transaction_type": "RECEIPT"})
        assert r.json()["total"] == 1

    def test_reconciliation_is_empty(self, client, seed):
        client.post("/stocks/receipt", json={"material_id": seed["m1"], "warehouse_id": seed["w1"], "quantity": "5"})
        client.post("/stocks/issue", json={"material_id": seed["m1"], "warehouse_id": seed["w1"], "quantity": "2"})
        r = client.get("/stocks/reconciliation")
        assert r.status_code == 200
        assert r.json() == []
