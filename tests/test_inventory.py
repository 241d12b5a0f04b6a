from __future__ import annotations

import unittest

from cleanops.models import Supply
from cleanops.services.inventory import is_low_stock, stock_status
from tests.support import SqliteAppTestCase


class LowStockRuleTests(unittest.TestCase):
    def test_boundaries(self) -> None:
        self.assertTrue(is_low_stock(5, 10))
        self.assertTrue(is_low_stock(10, 10))
        self.assertFalse(is_low_stock(11, 10))
        self.assertTrue(is_low_stock(-3, 0))

    def test_status_labels(self) -> None:
        self.assertEqual(stock_status(10, 10), "low")
        self.assertEqual(stock_status(11, 10), "ok")


class SupplyEndpointTests(SqliteAppTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.seed_admin()
        self.admin = self.login_client("admin", "admin123")

    def _create(self, name: str, quantity: int, minimum: int) -> dict:
        response = self.admin.post(
            "/api/supplies",
            json={"name": name, "unit": "pcs", "quantity_in_stock": quantity, "min_stock_level": minimum},
        )
        self.assertEqual(response.status_code, 200, response.text)
        return response.json()

    def test_created_supply_reports_stock_status(self) -> None:
        low = self._create("Gloves", 5, 10)
        edge = self._create("Mops", 10, 10)
        healthy = self._create("Soap", 11, 10)

        self.assertEqual((low["is_low_stock"], low["stock_status"]), (True, "low"))
        self.assertEqual((edge["is_low_stock"], edge["stock_status"]), (True, "low"))
        self.assertEqual((healthy["is_low_stock"], healthy["stock_status"]), (False, "ok"))

        low_stock_names = [item["name"] for item in self.admin.get("/api/supplies/low-stock").json()]
        self.assertEqual(low_stock_names, ["Gloves", "Mops"])
        all_names = [item["name"] for item in self.admin.get("/api/supplies").json()]
        self.assertEqual(all_names, ["Gloves", "Mops", "Soap"])

    def test_quantities_default_to_zero(self) -> None:
        response = self.admin.post("/api/supplies", json={"name": "Sponges"})

        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json()["quantity_in_stock"], 0)
        self.assertEqual(response.json()["min_stock_level"], 0)
        self.assertTrue(response.json()["is_low_stock"])

    def test_negative_quantities_are_rejected(self) -> None:
        response = self.admin.post("/api/supplies", json={"name": "Soap", "quantity_in_stock": -1})

        self.assert_error(response, 400, "VALIDATION_ERROR")

    def test_restock_raises_quantity(self) -> None:
        supply = self._create("Soap", 4, 10)

        response = self.admin.put(
            f"/api/supplies/{supply['id']}",
            json={"name": "Soap", "quantity_in_stock": 25},
        )

        self.assertEqual(response.json(), {"success": True})
        stored = self.db().get(Supply, supply["id"])
        self.assertEqual(stored.quantity_in_stock, 25)
        self.assertEqual(stored.min_stock_level, 10)

    def test_update_cannot_lower_quantity(self) -> None:
        supply = self._create("Soap", 20, 10)

        response = self.admin.put(
            f"/api/supplies/{supply['id']}",
            json={"name": "Soap", "quantity_in_stock": 5},
        )

        self.assert_error(response, 400, "VALIDATION_ERROR")
        self.assertEqual(self.db().get(Supply, supply["id"]).quantity_in_stock, 20)

    def test_update_without_quantity_keeps_stock(self) -> None:
        supply = self._create("Soap", 20, 10)

        response = self.admin.put(
            f"/api/supplies/{supply['id']}",
            json={"name": "Liquid soap", "min_stock_level": 3},
        )

        self.assertEqual(response.status_code, 200, response.text)
        stored = self.db().get(Supply, supply["id"])
        self.assertEqual((stored.name, stored.quantity_in_stock, stored.min_stock_level), ("Liquid soap", 20, 3))

    def test_update_missing_supply_is_not_found(self) -> None:
        self.assert_error(self.admin.put("/api/supplies/999", json={"name": "Soap"}), 404, "NOT_FOUND")

    def test_delete_is_idempotent(self) -> None:
        supply = self._create("Soap", 1, 1)

        self.assertEqual(self.admin.delete(f"/api/supplies/{supply['id']}").json(), {"success": True})
        self.assertEqual(self.admin.delete(f"/api/supplies/{supply['id']}").json(), {"success": True})
        self.assertIsNone(self.db().get(Supply, supply["id"]))

    def test_update_keeps_omitted_description_and_unit(self) -> None:
        created = self.admin.post(
            "/api/supplies",
            json={"name": "Soap", "description": "Liquid, 5l", "unit": "can"},
        ).json()

        self.admin.put(f"/api/supplies/{created['id']}", json={"name": "Hand soap"})
        stored = self.db().get(Supply, created["id"])
        self.assertEqual((stored.name, stored.description, stored.unit), ("Hand soap", "Liquid, 5l", "can"))

        self.admin.put(f"/api/supplies/{created['id']}", json={"name": "Hand soap", "unit": None})
        self.assertIsNone(self.db().get(Supply, created["id"]).unit)
