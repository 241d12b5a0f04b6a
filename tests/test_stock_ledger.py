from __future__ import annotations

from unittest.mock import patch

from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from cleanops.models import Objective, Supply, SupplyUsage, UserRole
from tests.support import SqliteAppTestCase


class SupplyUsageLedgerTests(SqliteAppTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.create_user("olga", role=UserRole.OPERATOR, name="Olga")
        self.operator = self.login_client("olga")
        with self.session_factory() as db:
            supply = Supply(name="Floor soap", unit="L", quantity_in_stock=10, min_stock_level=2)
            objective = Objective(name="Site 1")
            db.add_all([supply, objective])
            db.commit()
            self.supply_id = supply.id
            self.objective_id = objective.id

    def _stock(self) -> int:
        return self.db().get(Supply, self.supply_id).quantity_in_stock

    def _usage_count(self) -> int:
        return self.db().scalar(select(func.count(SupplyUsage.id)))

    def _record(self, quantity: int):  # type: ignore[no-untyped-def]
        return self.operator.post(
            "/api/supply-usage",
            json={
                "supply_id": self.supply_id,
                "objective_id": self.objective_id,
                "quantity_used": quantity,
            },
        )

    def test_usage_decrements_stock_and_returns_enriched_row(self) -> None:
        response = self._record(3)

        self.assertEqual(response.status_code, 200, response.text)
        body = response.json()
        self.assertEqual(body["quantity_used"], 3)
        self.assertEqual(body["supply_name"], "Floor soap")
        self.assertEqual(body["unit"], "L")
        self.assertEqual(body["objective_name"], "Site 1")
        self.assertEqual(body["operator_name"], "Olga")
        self.assertEqual(self._stock(), 7)
        self.assertEqual(self._usage_count(), 1)

    def test_stock_can_go_negative(self) -> None:
        self.assertEqual(self._record(4).status_code, 200)
        self.assertEqual(self._record(20).status_code, 200)

        self.assertEqual(self._stock(), -14)
        self.assertEqual(self._usage_count(), 2)

    def test_failed_decrement_rolls_back_usage_row(self) -> None:
        failure = OperationalError("UPDATE supplies", {}, Exception("disk I/O error"))

        with patch("cleanops.services.stock_ledger._decrement_stock", side_effect=failure):
            response = self._record(3)

        self.assert_error(response, 500, "STORE_ERROR")
        self.assertEqual(self._stock(), 10)
        self.assertEqual(self._usage_count(), 0)

    def test_unknown_supply_or_objective_is_not_found(self) -> None:
        missing_supply = self.operator.post(
            "/api/supply-usage",
            json={"supply_id": 999, "objective_id": self.objective_id, "quantity_used": 1},
        )
        missing_objective = self.operator.post(
            "/api/supply-usage",
            json={"supply_id": self.supply_id, "objective_id": 999, "quantity_used": 1},
        )

        self.assert_error(missing_supply, 404, "NOT_FOUND")
        self.assert_error(missing_objective, 404, "NOT_FOUND")
        self.assertEqual(self._stock(), 10)
        self.assertEqual(self._usage_count(), 0)

    def test_missing_or_non_positive_quantity_is_rejected(self) -> None:
        missing_field = self.operator.post(
            "/api/supply-usage",
            json={"supply_id": self.supply_id, "objective_id": self.objective_id},
        )

        self.assert_error(missing_field, 400, "VALIDATION_ERROR")
        self.assert_error(self._record(0), 400, "VALIDATION_ERROR")
        self.assert_error(self._record(-2), 400, "VALIDATION_ERROR")
        self.assertEqual(self._stock(), 10)

    def test_usage_listing_filters_by_objective_and_supply(self) -> None:
        with self.session_factory() as db:
            other_objective = Objective(name="Site 2")
            db.add(other_objective)
            db.commit()
            other_objective_id = other_objective.id

        self._record(1)
        self.operator.post(
            "/api/supply-usage",
            json={"supply_id": self.supply_id, "objective_id": other_objective_id, "quantity_used": 2},
        )

        everything = self.operator.get("/api/supply-usage").json()
        site_two = self.operator.get(f"/api/supply-usage?objective_id={other_objective_id}").json()
        by_supply = self.operator.get(f"/api/supply-usage?supply_id={self.supply_id}").json()

        self.assertEqual(len(everything), 2)
        self.assertEqual([item["quantity_used"] for item in site_two], [2])
        self.assertEqual(len(by_supply), 2)
        self.assertEqual(self._stock(), 7)

    def test_inverted_date_range_is_rejected(self) -> None:
        response = self.operator.get("/api/supply-usage?start_date=2026-05-10&end_date=2026-05-01")

        self.assert_error(response, 400, "VALIDATION_ERROR")
