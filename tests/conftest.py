import copy
import random
from collections import defaultdict

import pytest
from fastapi.testclient import TestClient

import main
import record_store
from cart_service import CartService
from order_service import OrderService
from product_service import ProductService
from wishlist_service import WishlistService


class InMemoryRecordClient:
    """Record API fake: tables of dict rows, with call log and failure injection."""

    def __init__(self):
        self.tables = defaultdict(list)
        self.calls = []
        self.failures = {}
        self._next_id = 1

    def fail_on(self, method, message="Backend unavailable"):
        self.failures[method] = message

    def seed(self, table, *rows):
        created = []
        for row in rows:
            row = dict(row)
            row.setdefault("Id", self._next_id)
            self._next_id = max(self._next_id, row["Id"]) + 1
            self.tables[table].append(row)
            created.append(row)
        return created

    def calls_to(self, method):
        return [c for c in self.calls if c[0] == method]

    def _failure(self, method):
        if method in self.failures:
            return {"success": False, "message": self.failures[method]}
        return None

    @staticmethod
    def _matches(row, field, operator, values):
        value = row.get(field)
        if operator == "EqualTo":
            return value in values
        if operator == "NotEqualTo":
            return value not in values
        if operator == "Contains":
            return any(str(v).lower() in str(value or "").lower() for v in values)
        raise ValueError(operator)

    def _combine(self, operator, results):
        return any(results) if (operator or "AND").upper() == "OR" else all(results)

    def _match(self, row, params):
        for c in params.get("where") or []:
            if not self._matches(row, c["FieldName"], c["Operator"], c["Values"]):
                return False
        for group in params.get("whereGroups") or []:
            sub_results = [
                self._combine(
                    sub.get("operator"),
                    [self._matches(row, c["fieldName"], c["operator"], c["values"]) for c in sub["conditions"]],
                )
                for sub in group.get("subGroups") or []
            ]
            if not self._combine(group.get("operator"), sub_results):
                return False
        return True

    def fetch_records(self, table, params=None):
        params = params or {}
        self.calls.append(("fetch_records", table, copy.deepcopy(params)))
        failure = self._failure("fetch_records")
        if failure:
            return failure

        rows = [copy.deepcopy(r) for r in self.tables[table] if self._match(r, params)]
        for order in reversed(params.get("orderBy") or []):
            name = order["fieldName"]
            rows.sort(
                key=lambda r: (r.get(name) is None, r.get(name)),
                reverse=order.get("sorttype", "ASC").upper() == "DESC",
            )

        response = {"success": True}
        if params.get("aggregators"):
            response["aggregators"] = [{"id": a["id"], "value": len(rows)} for a in params["aggregators"]]

        group_by = params.get("groupBy") or []
        if group_by:
            seen, grouped = set(), []
            for r in rows:
                key = tuple(r.get(name) for name in group_by)
                if key not in seen:
                    seen.add(key)
                    grouped.append({name: r.get(name) for name in group_by})
            rows = grouped

        paging = params.get("pagingInfo") or {}
        offset = paging.get("offset") or 0
        limit = paging.get("limit")
        rows = rows[offset:offset + limit] if limit else rows[offset:]
        response["data"] = rows
        return response

    def get_record_by_id(self, table, record_id, params=None):
        self.calls.append(("get_record_by_id", table, record_id))
        failure = self._failure("get_record_by_id")
        if failure:
            return failure
        for r in self.tables[table]:
            if r["Id"] == record_id:
                return {"success": True, "data": copy.deepcopy(r)}
        return {"success": False, "message": "Record not found"}

    def create_record(self, table, params):
        self.calls.append(("create_record", table, copy.deepcopy(params)))
        failure = self._failure("create_record")
        if failure:
            return failure
        created = self.seed(table, *params["records"])
        return {"success": True, "results": [{"success": True, "data": copy.deepcopy(r)} for r in created]}

    def update_record(self, table, params):
        self.calls.append(("update_record", table, copy.deepcopy(params)))
        failure = self._failure("update_record")
        if failure:
            return failure
        results = []
        for record in params["records"]:
            for r in self.tables[table]:
                if r["Id"] == record["Id"]:
                    r.update(record)
                    results.append({"success": True, "data": copy.deepcopy(r)})
        return {"success": True, "results": results}

    def delete_record(self, table, params):
        self.calls.append(("delete_record", table, copy.deepcopy(params)))
        failure = self._failure("delete_record")
        if failure:
            return failure
        ids = set(params["RecordIds"])
        self.tables[table] = [r for r in self.tables[table] if r["Id"] not in ids]
        return {"success": True, "results": [{"success": True, "data": {"Id": i}} for i in ids]}


@pytest.fixture
def store():
    return InMemoryRecordClient()


@pytest.fixture
def cart_service(store):
    return CartService(lambda: store)


@pytest.fixture
def order_service(store):
    return OrderService(lambda: store, rng=random.Random(7), sleep=lambda seconds: None)


@pytest.fixture
def product_service(store):
    return ProductService(lambda: store)


@pytest.fixture
def wishlist_service(store):
    return WishlistService(lambda: store)


@pytest.fixture
def client(store, monkeypatch):
    record_store.set_record_client(store)
    monkeypatch.setattr(main, "orders", OrderService(rng=random.Random(7), sleep=lambda seconds: None))
    with TestClient(main.app) as c:
        yield c
    record_store.set_record_client(None)
