"""
Record store client

The adapters talk to a generic record API: named tables, records with an
integer `Id`, and query parameters in the store's wire shape (`fields`,
`where`, `whereGroups`, `orderBy`, `pagingInfo`, `groupBy`, `aggregators`).
Every call answers with `{"success", "data" | "results", "message"}`.

`get_record_client()` hands out the active client. Tests and embedding
applications install their own with `set_record_client()`; otherwise a
MongoDB-backed client is built from `database.db` when it is configured.
"""
import functools
import logging
import re
from typing import Any, Callable, Dict, List, Optional

from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import PyMongoError

import database

logger = logging.getLogger(__name__)


class RecordStoreError(RuntimeError):
    pass


class ClientNotInitialized(RecordStoreError):
    def __init__(self, message: str = "Record store client not initialized"):
        super().__init__(message)


_client: Any = None


def set_record_client(client: Any) -> None:
    """Install `client` as the process-wide record client (None resets)."""
    global _client
    _client = client


def get_record_client() -> Any:
    global _client
    if _client is None and database.db is not None:
        _client = MongoRecordClient(database.db)
    return _client


class RecordService:
    """Base for the adapters: one record-store table, client resolved per call."""

    table_name: str = ""

    def __init__(self, client_factory: Callable[[], Any] = get_record_client):
        self.client_factory = client_factory

    def _client(self) -> Any:
        client = self.client_factory()
        if client is None:
            raise ClientNotInitialized()
        return client


# ---------- Query translation ----------

def _condition(field: str, operator: str, values: List[Any]) -> Dict[str, Any]:
    values = list(values or [])
    if operator == "EqualTo":
        return {field: values[0]} if len(values) == 1 else {field: {"$in": values}}
    if operator == "NotEqualTo":
        return {field: {"$ne": values[0]}} if len(values) == 1 else {field: {"$nin": values}}
    if operator == "Contains":
        patterns = [{field: {"$regex": re.escape(str(v)), "$options": "i"}} for v in values]
        if len(patterns) == 1:
            return patterns[0]
        return {"$or": patterns}
    raise RecordStoreError(f"Unsupported operator: {operator}")


def _combine(operator: Optional[str], clauses: List[Dict[str, Any]]) -> Dict[str, Any]:
    if not clauses:
        return {}
    if len(clauses) == 1:
        return clauses[0]
    key = "$or" if (operator or "AND").upper() == "OR" else "$and"
    return {key: clauses}


def build_filter(params: Dict[str, Any]) -> Dict[str, Any]:
    """Translate `where` and `whereGroups` into a MongoDB filter document."""
    clauses = [
        _condition(c["FieldName"], c["Operator"], c.get("Values"))
        for c in params.get("where") or []
    ]
    for group in params.get("whereGroups") or []:
        sub_clauses = []
        for sub in group.get("subGroups") or []:
            conditions = [
                _condition(c["fieldName"], c["operator"], c.get("values"))
                for c in sub.get("conditions") or []
            ]
            combined = _combine(sub.get("operator"), conditions)
            if combined:
                sub_clauses.append(combined)
        combined = _combine(group.get("operator"), sub_clauses)
        if combined:
            clauses.append(combined)
    return _combine("AND", clauses)


def build_sort(order_by: Optional[List[Dict[str, Any]]]) -> List[tuple]:
    return [
        (o["fieldName"], DESCENDING if str(o.get("sorttype", "ASC")).upper() == "DESC" else ASCENDING)
        for o in order_by or []
    ]


def build_projection(fields: Optional[List[Dict[str, Any]]]) -> Dict[str, int]:
    projection = {"_id": 0}
    names = [f["field"]["Name"] for f in fields or []]
    if names:
        projection["Id"] = 1
        for name in names:
            projection[name] = 1
    return projection


_AGGREGATE_OPS = {"Sum": "$sum", "Min": "$min", "Max": "$max", "Average": "$avg"}


def _reports_errors(func):
    @functools.wraps(func)
    def wrapper(self, table, *args, **kwargs):
        try:
            return func(self, table, *args, **kwargs)
        except (PyMongoError, RecordStoreError) as e:
            logger.error("Record store call %s on %s failed: %s", func.__name__, table, e)
            return {"success": False, "message": str(e)}
    return wrapper


class MongoRecordClient:
    """Record API implemented over a pymongo database, one collection per table."""

    def __init__(self, db):
        self.db = db

    @_reports_errors
    def fetch_records(self, table: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        params = params or {}
        filt = build_filter(params)
        paging = params.get("pagingInfo") or {}
        limit = int(paging.get("limit") or 0)
        offset = int(paging.get("offset") or 0)

        group_by = params.get("groupBy") or []
        if group_by:
            pipeline = [
                {"$match": filt},
                {"$group": {"_id": {name: f"${name}" for name in group_by}}},
                {"$sort": {f"_id.{name}": 1 for name in group_by}},
            ]
            if offset:
                pipeline.append({"$skip": offset})
            if limit:
                pipeline.append({"$limit": limit})
            rows = [dict(doc["_id"]) for doc in self.db[table].aggregate(pipeline)]
        else:
            cursor = self.db[table].find(filt, build_projection(params.get("fields")))
            sort = build_sort(params.get("orderBy"))
            if sort:
                cursor = cursor.sort(sort)
            if offset:
                cursor = cursor.skip(offset)
            if limit:
                cursor = cursor.limit(limit)
            rows = list(cursor)

        response = {"success": True, "data": rows}
        aggregators = params.get("aggregators") or []
        if aggregators:
            response["aggregators"] = [self._aggregate(table, filt, agg) for agg in aggregators]
        return response

    def _aggregate(self, table: str, filt: Dict[str, Any], aggregator: Dict[str, Any]) -> Dict[str, Any]:
        measure = (aggregator.get("fields") or [{}])[0]
        function = measure.get("Function", "Count")
        if function == "Count":
            value = self.db[table].count_documents(filt)
        elif function in _AGGREGATE_OPS:
            name = measure["field"]["Name"]
            docs = list(self.db[table].aggregate([
                {"$match": filt},
                {"$group": {"_id": None, "value": {_AGGREGATE_OPS[function]: f"${name}"}}},
            ]))
            value = docs[0]["value"] if docs else None
        else:
            raise RecordStoreError(f"Unsupported aggregate function: {function}")
        return {"id": aggregator.get("id"), "value": value}

    @_reports_errors
    def get_record_by_id(self, table: str, record_id: int, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        params = params or {}
        doc = self.db[table].find_one({"Id": int(record_id)}, build_projection(params.get("fields")))
        if doc is None:
            return {"success": False, "message": "Record not found"}
        return {"success": True, "data": doc}

    @_reports_errors
    def create_record(self, table: str, params: Dict[str, Any]) -> Dict[str, Any]:
        results = []
        for record in params.get("records") or []:
            doc = dict(record)
            doc["Id"] = database.next_sequence(self.db, table)
            self.db[table].insert_one(doc)
            doc.pop("_id", None)
            results.append({"success": True, "data": doc})
        return {"success": True, "results": results}

    @_reports_errors
    def update_record(self, table: str, params: Dict[str, Any]) -> Dict[str, Any]:
        results = []
        for record in params.get("records") or []:
            changes = {k: v for k, v in record.items() if k != "Id"}
            doc = self.db[table].find_one_and_update(
                {"Id": int(record["Id"])},
                {"$set": changes},
                projection={"_id": 0},
                return_document=ReturnDocument.AFTER,
            )
            if doc is None:
                results.append({"success": False, "message": f"Record {record['Id']} not found"})
            else:
                results.append({"success": True, "data": doc})
        failed = [r for r in results if not r["success"]]
        if failed:
            return {"success": False, "message": failed[0]["message"], "results": results}
        return {"success": True, "results": results}

    @_reports_errors
    def delete_record(self, table: str, params: Dict[str, Any]) -> Dict[str, Any]:
        ids = [int(i) for i in params.get("RecordIds") or []]
        self.db[table].delete_many({"Id": {"$in": ids}})
        return {"success": True, "results": [{"success": True, "data": {"Id": i}} for i in ids]}
