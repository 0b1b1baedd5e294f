"""
Database connection

Connects to MongoDB when DATABASE_URL and DATABASE_NAME are set. `db` stays
None otherwise so callers can report the store as unavailable.
"""
import os
from typing import Optional

from pymongo import MongoClient, ReturnDocument
from pymongo.database import Database

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

db: Optional[Database] = None

if DATABASE_URL and DATABASE_NAME:
    _client = MongoClient(DATABASE_URL)
    db = _client[DATABASE_NAME]


def next_sequence(database: Database, name: str) -> int:
    """Atomically bump and return the counter called `name`."""
    doc = database["counters"].find_one_and_update(
        {"_id": name},
        {"$inc": {"value": 1}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    return int(doc["value"])
