import logging
from typing import Any, Dict, Union

from record_store import RecordService
from schemas import CartItem, CartItemIn
from utils import ok, fail, to_int, to_float

logger = logging.getLogger(__name__)

CART_FIELDS = [
    {"field": {"Name": "Name"}},
    {"field": {"Name": "product_id_c"}},
    {"field": {"Name": "product_name_c"}},
    {"field": {"Name": "price_c"}},
    {"field": {"Name": "quantity_c"}},
    {"field": {"Name": "selected_size_c"}},
    {"field": {"Name": "selected_color_c"}},
]


def to_cart_item(row: Dict[str, Any]) -> CartItem:
    return CartItem(
        id=row["Id"],
        product_id=to_int(row.get("product_id_c"), 0),
        product_name=row.get("product_name_c"),
        price=to_float(row.get("price_c"), 0.0),
        quantity=to_int(row.get("quantity_c"), 1),
        selected_size=row.get("selected_size_c") or "",
        selected_color=row.get("selected_color_c") or "",
    )


class CartService(RecordService):
    table_name = "cart_item_c"

    def list(self) -> Dict[str, Any]:
        try:
            params = {"fields": CART_FIELDS, "pagingInfo": {"limit": 100, "offset": 0}}
            response = self._client().fetch_records(self.table_name, params)
            if not response.get("success"):
                logger.error("Failed to fetch cart: %s", response.get("message"))
                return fail(response.get("message"))
            return ok([to_cart_item(row) for row in response.get("data") or []])
        except Exception as e:
            logger.exception("Error fetching cart")
            return fail(str(e) or "Failed to fetch cart")

    def add(self, item: Union[CartItemIn, Dict[str, Any]]) -> Dict[str, Any]:
        """
        Add `item` to the cart, merging into an existing line with the same
        product, size and color. Returns the refreshed cart.

        Find-then-write is two separate calls, so two concurrent adds of a new
        key can both create a row. When the lookup finds such duplicates they
        are folded into the first row.
        """
        try:
            if not isinstance(item, CartItemIn):
                item = CartItemIn.model_validate(item)
            client = self._client()

            existing_params = {
                "fields": [{"field": {"Name": "Id"}}, {"field": {"Name": "quantity_c"}}],
                "where": [
                    {"FieldName": "product_id_c", "Operator": "EqualTo", "Values": [item.product_id]},
                    {"FieldName": "selected_size_c", "Operator": "EqualTo", "Values": [item.selected_size or ""]},
                    {"FieldName": "selected_color_c", "Operator": "EqualTo", "Values": [item.selected_color or ""]},
                ],
            }
            existing = client.fetch_records(self.table_name, existing_params)
            rows = (existing.get("data") or []) if existing.get("success") else []

            if rows:
                first, duplicates = rows[0], rows[1:]
                merged = sum(to_int(r.get("quantity_c"), 0) for r in rows) + item.quantity
                response = client.update_record(
                    self.table_name, {"records": [{"Id": first["Id"], "quantity_c": merged}]}
                )
                if not response.get("success"):
                    logger.error("Failed to update cart item: %s", response.get("message"))
                    return fail(response.get("message"))
                if duplicates:
                    logger.warning(
                        "Merging %d duplicate cart rows for product %s", len(duplicates), item.product_id
                    )
                    response = client.delete_record(
                        self.table_name, {"RecordIds": [r["Id"] for r in duplicates]}
                    )
                    if not response.get("success"):
                        logger.error("Failed to remove duplicate cart rows: %s", response.get("message"))
                        return fail(response.get("message"))
            else:
                record = {
                    "Name": f"Cart Item - {item.product_name}",
                    "product_id_c": item.product_id,
                    "product_name_c": item.product_name,
                    "price_c": item.price,
                    "quantity_c": item.quantity,
                    "selected_size_c": item.selected_size or "",
                    "selected_color_c": item.selected_color or "",
                }
                response = client.create_record(self.table_name, {"records": [record]})
                if not response.get("success"):
                    logger.error("Failed to add to cart: %s", response.get("message"))
                    return fail(response.get("message"))

            return self.list()
        except Exception as e:
            logger.exception("Error adding to cart")
            return fail(str(e) or "Failed to add to cart")

    def set_quantity(self, item_id: Union[int, str], quantity: int) -> Dict[str, Any]:
        try:
            client = self._client()
            if quantity <= 0:
                return self.remove(item_id)

            params = {"records": [{"Id": int(item_id), "quantity_c": int(quantity)}]}
            response = client.update_record(self.table_name, params)
            if not response.get("success"):
                logger.error("Failed to update cart item quantity: %s", response.get("message"))
                return fail(response.get("message"))
            return self.list()
        except Exception as e:
            logger.exception("Error updating cart quantity")
            return fail(str(e) or "Failed to update cart")

    def remove(self, item_id: Union[int, str]) -> Dict[str, Any]:
        try:
            response = self._client().delete_record(self.table_name, {"RecordIds": [int(item_id)]})
            if not response.get("success"):
                logger.error("Failed to remove cart item: %s", response.get("message"))
                return fail(response.get("message"))
            return self.list()
        except Exception as e:
            logger.exception("Error removing from cart")
            return fail(str(e) or "Failed to remove from cart")

    def clear(self) -> Dict[str, Any]:
        try:
            client = self._client()
            cart = self.list()
            if not cart["success"] or not cart["data"]:
                return ok([])

            ids = [item.id for item in cart["data"]]
            response = client.delete_record(self.table_name, {"RecordIds": ids})
            if not response.get("success"):
                logger.error("Failed to clear cart: %s", response.get("message"))
                return fail(response.get("message"))
            return ok([])
        except Exception as e:
            logger.exception("Error clearing cart")
            return fail(str(e) or "Failed to clear cart")

    def total(self) -> Dict[str, Any]:
        try:
            cart = self.list()
            if not cart["success"]:
                return fail(cart["error"])
            return ok(sum(item.price * item.quantity for item in cart["data"]))
        except Exception as e:
            logger.exception("Error calculating cart total")
            return fail(str(e) or "Failed to calculate cart total")

    def item_count(self) -> Dict[str, Any]:
        try:
            cart = self.list()
            if not cart["success"]:
                return fail(cart["error"])
            return ok(sum(item.quantity for item in cart["data"]))
        except Exception as e:
            logger.exception("Error getting cart item count")
            return fail(str(e) or "Failed to get cart count")
