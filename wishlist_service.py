"""
Wishlist adapter

Unlike the other adapters this one hands back bare values: reads degrade to a
safe default (`[]`, `False`, `0`) on any failure, while `add` and `remove`
raise `WishlistError` so the caller can tell the shopper.
"""
import logging
from typing import List, Union

from record_store import RecordService
from utils import to_int

logger = logging.getLogger(__name__)


class WishlistError(RuntimeError):
    pass


class WishlistService(RecordService):
    table_name = "wishlist_item_c"

    def list(self) -> List[int]:
        try:
            params = {
                "fields": [{"field": {"Name": "product_id_c"}}],
                "pagingInfo": {"limit": 100, "offset": 0},
            }
            response = self._client().fetch_records(self.table_name, params)
            if not response.get("success"):
                logger.error("Failed to fetch wishlist: %s", response.get("message"))
                return []
            return [to_int(row.get("product_id_c"), 0) for row in response.get("data") or []]
        except Exception:
            logger.exception("Error retrieving wishlist")
            return []

    def add(self, product_id: Union[int, str]) -> bool:
        """Returns False when the product is already wishlisted."""
        try:
            client = self._client()
            product_id = int(product_id)
            if product_id in self.list():
                return False

            params = {"records": [{"Name": f"Wishlist Item {product_id}", "product_id_c": product_id}]}
            response = client.create_record(self.table_name, params)
            if not response.get("success"):
                logger.error("Failed to add to wishlist: %s", response.get("message"))
                raise WishlistError("Failed to add item to wishlist")
            return True
        except Exception as e:
            logger.error("Error adding to wishlist: %s", e)
            raise WishlistError("Failed to add item to wishlist") from e

    def remove(self, product_id: Union[int, str]) -> bool:
        try:
            client = self._client()
            params = {
                "fields": [{"field": {"Name": "Id"}}, {"field": {"Name": "product_id_c"}}],
                "where": [{"FieldName": "product_id_c", "Operator": "EqualTo", "Values": [int(product_id)]}],
            }
            found = client.fetch_records(self.table_name, params)
            if not found.get("success") or not found.get("data"):
                # nothing to remove
                return True

            ids = [row["Id"] for row in found["data"]]
            response = client.delete_record(self.table_name, {"RecordIds": ids})
            if not response.get("success"):
                logger.error("Failed to remove from wishlist: %s", response.get("message"))
                raise WishlistError("Failed to remove item from wishlist")
            return True
        except Exception as e:
            logger.error("Error removing from wishlist: %s", e)
            raise WishlistError("Failed to remove item from wishlist") from e

    def is_in_wishlist(self, product_id: Union[int, str]) -> bool:
        try:
            client = self.client_factory()
            if client is None:
                return False
            params = {
                "fields": [{"field": {"Name": "Id"}}],
                "where": [{"FieldName": "product_id_c", "Operator": "EqualTo", "Values": [int(product_id)]}],
                "pagingInfo": {"limit": 1, "offset": 0},
            }
            response = client.fetch_records(self.table_name, params)
            if not response.get("success"):
                return False
            return len(response.get("data") or []) > 0
        except Exception:
            logger.exception("Error checking wishlist")
            return False

    def clear(self) -> bool:
        try:
            client = self._client()
            params = {
                "fields": [{"field": {"Name": "Id"}}],
                "pagingInfo": {"limit": 1000, "offset": 0},
            }
            response = client.fetch_records(self.table_name, params)
            if not response.get("success"):
                logger.error("Failed to read wishlist for clearing: %s", response.get("message"))
                return False
            rows = response.get("data") or []
            if not rows:
                return True

            deleted = client.delete_record(self.table_name, {"RecordIds": [row["Id"] for row in rows]})
            if not deleted.get("success"):
                logger.error("Failed to clear wishlist: %s", deleted.get("message"))
                return False
            return True
        except Exception:
            logger.exception("Error clearing wishlist")
            return False

    def count(self) -> int:
        try:
            client = self.client_factory()
            if client is None:
                return 0
            params = {
                "fields": [{"field": {"Name": "Id"}}],
                "aggregators": [{
                    "id": "wishlistCount",
                    "fields": [{"field": {"Name": "Id"}, "Function": "Count"}],
                }],
            }
            response = client.fetch_records(self.table_name, params)
            if not response.get("success"):
                return 0
            for aggregate in response.get("aggregators") or []:
                if aggregate.get("id") == "wishlistCount":
                    return to_int(aggregate.get("value"), 0)
            return len(response.get("data") or [])
        except Exception:
            logger.exception("Error getting wishlist count")
            return 0
