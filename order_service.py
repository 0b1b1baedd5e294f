import json
import logging
import os
import random
import time
from typing import Any, Callable, Dict, Optional, Union

from record_store import RecordService, get_record_client
from schemas import Order, OrderFilters, OrderIn, Payment, PaymentIn, Tracking
from utils import ok, fail, to_float, parse_json, now_iso, now_millis

logger = logging.getLogger(__name__)

PAYMENT_DELAY_SECONDS = float(os.getenv("PAYMENT_DELAY_SECONDS", "1.0"))
PAYMENT_FAILURE_RATE = 0.1
PAYMENT_FAILED_MESSAGE = "Payment failed. Please try again."

ORDER_FIELDS = [
    {"field": {"Name": "Name"}},
    {"field": {"Name": "order_number_c"}},
    {"field": {"Name": "order_date_c"}},
    {"field": {"Name": "status_c"}},
    {"field": {"Name": "total_c"}},
    {"field": {"Name": "items_c"}},
    {"field": {"Name": "shipping_address_c"}},
    {"field": {"Name": "tracking_c"}},
]


def to_order(row: Dict[str, Any]) -> Order:
    return Order(
        id=row["Id"],
        order_number=row.get("order_number_c"),
        order_date=row.get("order_date_c"),
        status=row.get("status_c"),
        total=to_float(row.get("total_c"), 0.0),
        items=parse_json(row.get("items_c"), []),
        shipping_address=parse_json(row.get("shipping_address_c"), {}),
        tracking=Tracking.model_validate(parse_json(row.get("tracking_c"), {})),
    )


def capitalize_status(status: str) -> str:
    return status[:1].upper() + status[1:]


class OrderService(RecordService):
    table_name = "order_c"

    def __init__(
        self,
        client_factory: Callable[[], Any] = get_record_client,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], None] = time.sleep,
        payment_delay: float = PAYMENT_DELAY_SECONDS,
    ):
        super().__init__(client_factory)
        self.rng = rng or random.Random()
        self.sleep = sleep
        self.payment_delay = payment_delay

    def create(self, order: Union[OrderIn, Dict[str, Any]]) -> Dict[str, Any]:
        try:
            if not isinstance(order, OrderIn):
                order = OrderIn.model_validate(order)
            client = self._client()

            stamp = str(now_millis())
            placed_at = now_iso()
            tracking = {
                "carrier": "FedEx",
                "trackingNumber": f"TRK{stamp[-8:]}",
                "events": [{"date": placed_at, "status": "Order placed", "location": "Online"}],
            }
            record = {
                "Name": order.order_number or f"Order-{stamp}",
                "order_number_c": order.order_number or f"VT{stamp[-6:]}",
                "order_date_c": placed_at,
                "status_c": "confirmed",
                "total_c": to_float(order.total_amount, 0.0),
                "items_c": json.dumps(order.items),
                "shipping_address_c": json.dumps(order.shipping_address),
                "tracking_c": json.dumps(tracking),
            }

            response = client.create_record(self.table_name, {"records": [record]})
            if not response.get("success"):
                logger.error("Failed to create order: %s", response.get("message"))
                return fail(response.get("message"))

            results = response.get("results") or []
            if not results or not results[0].get("success", True):
                message = results[0].get("message") if results else None
                logger.error("Order record was not created: %s", message)
                return fail(message or "Failed to create order")
            created = to_order(results[0]["data"])
            created.total_amount = created.total
            return ok(created)
        except Exception as e:
            logger.exception("Error creating order")
            return fail(str(e) or "Failed to create order")

    def get_by_id(self, order_id: Union[int, str]) -> Dict[str, Any]:
        try:
            params = {"fields": ORDER_FIELDS}
            response = self._client().get_record_by_id(self.table_name, int(order_id), params)
            if not response.get("success") or not response.get("data"):
                return fail("Order not found")
            return ok(to_order(response["data"]))
        except Exception as e:
            logger.exception("Error fetching order by ID")
            return fail(str(e) or "Failed to fetch order")

    def list_for_user(self, filters: Union[OrderFilters, Dict[str, Any], None] = None) -> Dict[str, Any]:
        """
        List orders newest first. `status` filters by exact match ("all"
        disables it) and `search` matches order number or item text.
        """
        try:
            if not isinstance(filters, OrderFilters):
                filters = OrderFilters.model_validate(filters or {})
            client = self._client()

            params = {
                "fields": ORDER_FIELDS,
                "where": [],
                "orderBy": [{"fieldName": "order_date_c", "sorttype": "DESC"}],
                "pagingInfo": {"limit": 50, "offset": 0},
            }
            if filters.status and filters.status != "all":
                params["where"].append(
                    {"FieldName": "status_c", "Operator": "EqualTo", "Values": [filters.status]}
                )
            if filters.search:
                params["whereGroups"] = [{
                    "operator": "OR",
                    "subGroups": [{
                        "conditions": [
                            {"fieldName": "order_number_c", "operator": "Contains", "values": [filters.search]},
                            {"fieldName": "items_c", "operator": "Contains", "values": [filters.search]},
                        ],
                        "operator": "OR",
                    }],
                }]

            response = client.fetch_records(self.table_name, params)
            if not response.get("success"):
                logger.error("Failed to fetch user orders: %s", response.get("message"))
                return fail(response.get("message"))
            return ok([to_order(row) for row in response.get("data") or []])
        except Exception as e:
            logger.exception("Error fetching user orders")
            return fail(str(e) or "Failed to fetch orders")

    def get_tracking(self, order_id: Union[int, str]) -> Dict[str, Any]:
        try:
            order = self.get_by_id(order_id)
            if not order["success"]:
                return fail("Order not found")
            return ok(order["data"].tracking)
        except Exception as e:
            logger.exception("Error fetching order tracking")
            return fail(str(e) or "Failed to fetch tracking information")

    def update_status(self, order_id: Union[int, str], new_status: str) -> Dict[str, Any]:
        """
        Set the order status and append one tracking event for it.

        Read, append and write back are separate calls with no version check;
        a concurrent update of the same order can drop one of the events.
        """
        try:
            client = self._client()
            current = self.get_by_id(order_id)
            if not current["success"]:
                return fail("Order not found")

            tracking = current["data"].tracking.model_dump(by_alias=True, exclude_unset=True)
            tracking.setdefault("events", []).append({
                "date": now_iso(),
                "status": capitalize_status(new_status),
                "location": "Warehouse",
            })

            params = {
                "records": [{
                    "Id": int(order_id),
                    "status_c": new_status,
                    "tracking_c": json.dumps(tracking),
                }]
            }
            response = client.update_record(self.table_name, params)
            if not response.get("success"):
                logger.error("Failed to update order status: %s", response.get("message"))
                return fail(response.get("message"))
            return self.get_by_id(order_id)
        except Exception as e:
            logger.exception("Error updating order status")
            return fail(str(e) or "Failed to update order status")

    def process_payment(self, payment: Union[PaymentIn, Dict[str, Any], None] = None) -> Dict[str, Any]:
        """Simulated gateway: fixed delay, then succeeds nine times in ten."""
        try:
            self.sleep(self.payment_delay)
            if self.rng.random() > PAYMENT_FAILURE_RATE:
                return ok(Payment(transaction_id=f"txn_{now_millis()}", status="completed"))
            logger.info("Simulated payment declined")
            return fail(PAYMENT_FAILED_MESSAGE)
        except Exception as e:
            logger.exception("Error processing payment")
            return fail(str(e) or "Payment processing failed")
