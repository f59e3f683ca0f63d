from app.services.product_service import ProductFilters, product_service
from app.storage.image_storage import ImageStorage


def test_default_filter_lists_active_products_newest_first(db, make_user, make_product):
    seller = make_user()
    older = make_product(seller, status="active")
    make_product(seller, status="sold")
    newer = make_product(seller, status="active")

    result = product_service.get_user_products(db, seller.id, ProductFilters())

    assert [p["id"] for p in result["data"]] == [newer.id, older.id]
    assert result["pagination"]["total"] == 2


def test_status_all_never_includes_deleted(db, make_user, make_product):
    seller = make_user()
    for status in ("active", "reserved", "sold", "deleted"):
        make_product(seller, status=status)

    result = product_service.get_user_products(db, seller.id, ProductFilters(status="all"))

    statuses = {p["status"] for p in result["data"]}
    assert statuses == {"active", "reserved", "sold"}
    assert result["pagination"]["total"] == 3


def test_only_the_sellers_products_are_returned(db, make_user, make_product):
    seller = make_user()
    other = make_user()
    mine = make_product(seller)
    make_product(other)

    result = product_service.get_user_products(db, seller.id, ProductFilters())

    assert [p["id"] for p in result["data"]] == [mine.id]


def test_pagination_has_more(db, make_user, make_product):
    seller = make_user()
    for _ in range(45):
        make_product(seller)

    pages = [
        product_service.get_user_products(db, seller.id, ProductFilters(page=page, limit=20))
        for page in (1, 2, 3)
    ]

    assert [p["pagination"]["hasMore"] for p in pages] == [True, True, False]
    assert [len(p["data"]) for p in pages] == [20, 20, 5]
    assert pages[0]["pagination"]["totalPages"] == 3
    assert pages[0]["pagination"]["total"] == 45


def test_empty_result(db, make_user):
    seller = make_user()

    result = product_service.get_user_products(db, seller.id, ProductFilters())

    assert result["data"] == []
    assert result["pagination"] == {
        "page": 1, "limit": 20, "total": 0, "totalPages": 0, "hasMore": False,
    }


def test_filters_are_combined(db, make_user, make_product):
    seller = make_user()
    match = make_product(seller, price=1500, condition="new", category_id=None)
    make_product(seller, price=500, condition="new")
    make_product(seller, price=1500, condition="good")
    make_product(seller, price=5000, condition="new")

    filters = ProductFilters(min_price=1000, max_price=2000, condition=["new", "very-good"])
    result = product_service.get_user_products(db, seller.id, filters)

    assert [p["id"] for p in result["data"]] == [match.id]


def test_category_filter(db, make_user, make_product):
    from app.models.category import Category

    seller = make_user()
    shoes = Category(name="Shoes", slug="shoes")
    db.add(shoes)
    db.commit()
    in_category = make_product(seller, category_id=shoes.id)
    make_product(seller)

    result = product_service.get_user_products(db, seller.id, ProductFilters(category_id=shoes.id))

    assert [p["id"] for p in result["data"]] == [in_category.id]


def test_sort_by_price(db, make_user, make_product):
    seller = make_user()
    for price in (300, 100, 200):
        make_product(seller, price=price)

    ascending = product_service.get_user_products(db, seller.id, ProductFilters(sort_by="price-asc"))
    descending = product_service.get_user_products(db, seller.id, ProductFilters(sort_by="price-desc"))

    assert [p["price"] for p in ascending["data"]] == [100, 200, 300]
    assert [p["price"] for p in descending["data"]] == [300, 200, 100]


def test_sort_oldest_first(db, make_user, make_product):
    seller = make_user()
    first = make_product(seller)
    second = make_product(seller)

    result = product_service.get_user_products(db, seller.id, ProductFilters(sort_by="oldest"))

    assert [p["id"] for p in result["data"]] == [first.id, second.id]


def test_image_references_are_resolved(db, make_user, make_product):
    seller = make_user()
    make_product(seller, images=["products/a.webp", "https://other.example.com/b.jpg"])

    result = product_service.get_user_products(
        db, seller.id, ProductFilters(), images=ImageStorage("https://cdn.example.com/")
    )

    assert result["data"][0]["images"] == [
        "https://cdn.example.com/products/a.webp",
        "https://other.example.com/b.jpg",
    ]
