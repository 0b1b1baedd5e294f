import logging
from typing import Any, Dict, List, Union

from record_store import RecordService
from schemas import Product, ProductFilters
from utils import ok, fail, to_int, to_float, to_bool, split_lines

logger = logging.getLogger(__name__)

PRODUCT_FIELDS = [
    {"field": {"Name": "Name"}},
    {"field": {"Name": "name_c"}},
    {"field": {"Name": "category_c"}},
    {"field": {"Name": "description_c"}},
    {"field": {"Name": "price_c"}},
    {"field": {"Name": "stock_c"}},
    {"field": {"Name": "featured_c"}},
    {"field": {"Name": "images_c"}},
    {"field": {"Name": "sizes_c"}},
    {"field": {"Name": "colors_c"}},
    {"field": {"Name": "subcategory_c"}},
]

SORT_ORDERS = {
    "price-low": {"fieldName": "price_c", "sorttype": "ASC"},
    "price-high": {"fieldName": "price_c", "sorttype": "DESC"},
    "name": {"fieldName": "name_c", "sorttype": "ASC"},
}


def to_product(row: Dict[str, Any]) -> Product:
    return Product(
        id=row["Id"],
        name=row.get("name_c") or row.get("Name"),
        category=row.get("category_c"),
        subcategory=row.get("subcategory_c"),
        description=row.get("description_c"),
        price=to_float(row.get("price_c"), 0.0),
        stock=to_int(row.get("stock_c"), 0),
        featured=to_bool(row.get("featured_c")),
        images=split_lines(row.get("images_c")),
        sizes=split_lines(row.get("sizes_c")),
        colors=split_lines(row.get("colors_c")),
    )


def apply_client_filters(products: List[Product], filters: ProductFilters) -> List[Product]:
    """Narrow an already-fetched page by size, color and price range."""
    if filters.sizes:
        products = [p for p in products if any(s in p.sizes for s in filters.sizes)]
    if filters.colors:
        products = [p for p in products if any(c in p.colors for c in filters.colors)]
    if filters.min_price is not None:
        products = [p for p in products if p.price >= filters.min_price]
    if filters.max_price is not None:
        products = [p for p in products if p.price <= filters.max_price]
    return products


class ProductService(RecordService):
    table_name = "product_c"

    def list(self, filters: Union[ProductFilters, Dict[str, Any], None] = None) -> Dict[str, Any]:
        """
        Fetch one page of products filtered by category and search text on the
        store, then narrow it here by sizes, colors and price range. The local
        filters only see the fetched page.
        """
        try:
            if not isinstance(filters, ProductFilters):
                filters = ProductFilters.model_validate(filters or {})
            client = self._client()

            params = {
                "fields": PRODUCT_FIELDS,
                "where": [],
                "pagingInfo": {"limit": 100, "offset": 0},
            }
            if filters.category:
                params["where"].append(
                    {"FieldName": "category_c", "Operator": "EqualTo", "Values": [filters.category]}
                )
            if filters.search:
                params["whereGroups"] = [{
                    "operator": "OR",
                    "subGroups": [{
                        "conditions": [
                            {"fieldName": "name_c", "operator": "Contains", "values": [filters.search]},
                            {"fieldName": "description_c", "operator": "Contains", "values": [filters.search]},
                        ],
                        "operator": "OR",
                    }],
                }]
            if filters.sort_by in SORT_ORDERS:
                params["orderBy"] = [SORT_ORDERS[filters.sort_by]]

            response = client.fetch_records(self.table_name, params)
            if not response.get("success"):
                logger.error("Failed to fetch products: %s", response.get("message"))
                return fail(response.get("message"))

            products = [to_product(row) for row in response.get("data") or []]
            return ok(apply_client_filters(products, filters))
        except Exception as e:
            logger.exception("Error fetching products")
            return fail(str(e) or "Failed to fetch products")

    def get_by_id(self, product_id: Union[int, str]) -> Dict[str, Any]:
        try:
            params = {"fields": PRODUCT_FIELDS}
            response = self._client().get_record_by_id(self.table_name, int(product_id), params)
            if not response.get("success") or not response.get("data"):
                return fail("Product not found")
            return ok(to_product(response["data"]))
        except Exception as e:
            logger.exception("Error fetching product by ID")
            return fail(str(e) or "Failed to fetch product")

    def get_featured(self) -> Dict[str, Any]:
        try:
            params = {
                "fields": PRODUCT_FIELDS,
                "where": [{"FieldName": "featured_c", "Operator": "EqualTo", "Values": [True]}],
                "pagingInfo": {"limit": 10, "offset": 0},
            }
            response = self._client().fetch_records(self.table_name, params)
            if not response.get("success"):
                logger.error("Failed to fetch featured products: %s", response.get("message"))
                return fail(response.get("message"))
            return ok([to_product(row) for row in response.get("data") or []])
        except Exception as e:
            logger.exception("Error fetching featured products")
            return fail(str(e) or "Failed to fetch featured products")

    def get_related(self, product_id: Union[int, str], limit: int = 4) -> Dict[str, Any]:
        try:
            client = self._client()
            product = self.get_by_id(product_id)
            if not product["success"]:
                return fail("Product not found")

            params = {
                "fields": PRODUCT_FIELDS,
                "where": [
                    {"FieldName": "category_c", "Operator": "EqualTo", "Values": [product["data"].category]},
                    {"FieldName": "Id", "Operator": "NotEqualTo", "Values": [int(product_id)]},
                ],
                "pagingInfo": {"limit": limit, "offset": 0},
            }
            response = client.fetch_records(self.table_name, params)
            if not response.get("success"):
                logger.error("Failed to fetch related products: %s", response.get("message"))
                return fail(response.get("message"))
            return ok([to_product(row) for row in response.get("data") or []])
        except Exception as e:
            logger.exception("Error fetching related products")
            return fail(str(e) or "Failed to fetch related products")

    def get_categories(self) -> Dict[str, Any]:
        try:
            params = {
                "fields": [{"field": {"Name": "category_c"}}],
                "groupBy": ["category_c"],
                "pagingInfo": {"limit": 50, "offset": 0},
            }
            response = self._client().fetch_records(self.table_name, params)
            if not response.get("success"):
                logger.error("Failed to fetch categories: %s", response.get("message"))
                return fail(response.get("message"))

            categories = {
                row.get("category_c")
                for row in response.get("data") or []
                if isinstance(row.get("category_c"), str) and row["category_c"].strip()
            }
            return ok(sorted(categories))
        except Exception as e:
            logger.exception("Error fetching categories")
            return fail(str(e) or "Failed to fetch categories")
