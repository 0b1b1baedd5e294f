import pytest

TABLE = "product_c"


@pytest.fixture
def catalog(store):
    return store.seed(
        TABLE,
        {"name_c": "Linen Shirt", "category_c": "Shirts", "description_c": "Breathable summer linen",
         "price_c": "45.00", "stock_c": "12", "featured_c": True,
         "images_c": "a.jpg\n\nb.jpg", "sizes_c": "S\nM\nL", "colors_c": "White\nBlue"},
        {"name_c": "Oxford Shirt", "category_c": "Shirts", "description_c": "Button-down cotton",
         "price_c": "60", "stock_c": "3", "featured_c": False,
         "sizes_c": "M\nXL", "colors_c": "Blue"},
        {"Name": "Wool Scarf", "category_c": "Accessories", "description_c": "Soft merino wool",
         "price_c": "25.5", "stock_c": None, "featured_c": True,
         "sizes_c": "", "colors_c": "Grey"},
        {"name_c": "Denim Jacket", "category_c": "Outerwear", "description_c": "Classic blue denim",
         "price_c": "120", "stock_c": "5", "featured_c": False,
         "sizes_c": "M\nL", "colors_c": "Indigo"},
        {"name_c": "Poplin Shirt", "category_c": "Shirts", "description_c": "Crisp poplin",
         "price_c": "38", "stock_c": "7", "featured_c": False,
         "sizes_c": "S", "colors_c": "White"},
    )


def names(result):
    return [p.name for p in result["data"]]


def test_list_maps_rows(product_service, catalog):
    products = product_service.list()["data"]
    linen = products[0]
    assert linen.price == 45.0
    assert linen.stock == 12
    assert linen.featured is True
    assert linen.images == ["a.jpg", "b.jpg"]
    assert linen.sizes == ["S", "M", "L"]

    scarf = products[2]
    assert scarf.name == "Wool Scarf"
    assert scarf.stock == 0
    assert scarf.sizes == []


def test_list_server_filters(product_service, store, catalog):
    assert names(product_service.list({"category": "Shirts"})) == ["Linen Shirt", "Oxford Shirt", "Poplin Shirt"]
    assert names(product_service.list({"search": "denim"})) == ["Denim Jacket"]
    assert names(product_service.list({"search": "WOOL"})) == ["Wool Scarf"]

    params = store.calls_to("fetch_records")[0][2]
    assert params["where"] == [{"FieldName": "category_c", "Operator": "EqualTo", "Values": ["Shirts"]}]
    assert params["pagingInfo"] == {"limit": 100, "offset": 0}


def test_list_sorting(product_service, catalog):
    assert names(product_service.list({"category": "Shirts", "sortBy": "price-low"})) == [
        "Poplin Shirt", "Linen Shirt", "Oxford Shirt"]
    assert names(product_service.list({"category": "Shirts", "sort_by": "price-high"})) == [
        "Oxford Shirt", "Linen Shirt", "Poplin Shirt"]
    assert names(product_service.list({"category": "Shirts", "sortBy": "name"})) == [
        "Linen Shirt", "Oxford Shirt", "Poplin Shirt"]


def test_list_client_side_filters(product_service, catalog):
    assert names(product_service.list({"sizes": ["XL", "S"]})) == ["Linen Shirt", "Oxford Shirt", "Poplin Shirt"]
    assert names(product_service.list({"colors": ["Grey", "Indigo"]})) == ["Wool Scarf", "Denim Jacket"]
    assert names(product_service.list({"minPrice": 40, "maxPrice": 100})) == ["Linen Shirt", "Oxford Shirt"]
    assert names(product_service.list({"maxPrice": 0})) == []


def test_list_rejects_unknown_sort(product_service, catalog):
    result = product_service.list({"sortBy": "popularity"})
    assert result["success"] is False


def test_get_by_id(product_service, catalog):
    assert product_service.get_by_id(catalog[3]["Id"])["data"].name == "Denim Jacket"
    assert product_service.get_by_id("4")["data"].name == "Denim Jacket"
    assert product_service.get_by_id(999) == {"success": False, "error": "Product not found"}


def test_get_featured(product_service, store, catalog):
    assert names(product_service.get_featured()) == ["Linen Shirt", "Wool Scarf"]
    assert store.calls_to("fetch_records")[0][2]["pagingInfo"]["limit"] == 10


def test_get_related_excludes_product_and_respects_limit(product_service, catalog):
    linen_id = catalog[0]["Id"]
    assert names(product_service.get_related(linen_id)) == ["Oxford Shirt", "Poplin Shirt"]
    assert names(product_service.get_related(linen_id, limit=1)) == ["Oxford Shirt"]
    assert product_service.get_related(999) == {"success": False, "error": "Product not found"}


def test_get_categories_sorted_without_blanks(product_service, store, catalog):
    store.seed(TABLE, {"name_c": "Mystery", "category_c": ""}, {"name_c": "Blank", "category_c": "   "},
               {"name_c": "Orphan", "category_c": None})
    assert product_service.get_categories() == {
        "success": True, "data": ["Accessories", "Outerwear", "Shirts"]}
    assert store.calls_to("fetch_records")[0][2]["groupBy"] == ["category_c"]


def test_failure_passthrough(product_service, store):
    store.fail_on("fetch_records", "rate limited")
    assert product_service.list() == {"success": False, "error": "rate limited"}
    assert product_service.get_categories() == {"success": False, "error": "rate limited"}
