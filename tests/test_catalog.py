from decimal import Decimal

from conftest import add_attribute, add_category, add_image, add_sizes
from storefront.services import catalog
from storefront.services.catalog import encode_image_url, format_price, product_sort_key


def test_format_price():
    assert format_price(None) is None
    assert format_price(Decimal("19.99")) == "$19.99"


def test_encode_image_url_quotes_path_segments_once():
    assert encode_image_url("https://cdn.example.com/products/Logo Tee.webp") == (
        "https://cdn.example.com/products/Logo%20Tee.webp"
    )
    already = "https://cdn.example.com/products/Logo%20Tee.webp"
    assert encode_image_url(already) == already


def test_product_sort_key_orders_by_garment_type():
    names = ["Beanie", "Classic Tee", "Logo Tee", "Denim Jeans", "Hoodie", "Jacket", "Therma Mask", "Sticker"]
    assert sorted(names, key=product_sort_key) == [
        "Jacket", "Hoodie", "Logo Tee", "Classic Tee", "Denim Jeans", "Beanie", "Therma Mask", "Sticker",
    ]


def test_jacket_variants_ordered():
    names = ["Black Jacket", "Green Jacket", "Blue Jacket", "Black White Jacket"]
    assert sorted(names, key=product_sort_key) == ["Black White Jacket", "Blue Jacket", "Black Jacket", "Green Jacket"]


def test_list_products_collapses_join_fan_out(db, make_product):
    tee = make_product("Logo Tee")
    add_image(db, tee, "https://cdn.example.com/a.webp", sort_order=1)
    add_image(db, tee, "https://cdn.example.com/b.webp", primary=True, sort_order=2)
    add_category(db, "Tees", "tees", products=[tee])
    add_category(db, "Featured", "featured", products=[tee])
    add_sizes(db, tee, {"M": 2, "S": 1, "L": 0})
    add_attribute(db, tee, "Color", '["Black", "White"]')

    products = catalog.list_products(db)

    assert len(products) == 1
    out = products[0]
    assert len(out.galleryImages) == 2
    assert len(out.categories) == 2
    assert [s.size for s in out.sizes] == ["S", "M", "L"]
    assert out.image.sourceUrl == "https://cdn.example.com/b.webp"
    assert out.attributes[0].options == ["Black", "White"]
    assert out.price == "$19.99"


def test_primary_image_falls_back_to_lowest_sort_order(db, make_product):
    hoodie = make_product("Hoodie")
    add_image(db, hoodie, "https://cdn.example.com/second.webp", sort_order=2)
    add_image(db, hoodie, "https://cdn.example.com/first.webp", sort_order=1)

    out = catalog.get_product(db, "hoodie")
    assert out.image.sourceUrl == "https://cdn.example.com/first.webp"


def test_sizes_fall_back_to_size_attribute(db, make_product):
    tee = make_product("Classic Tee")
    add_attribute(db, tee, "Size", '["XL", "S", "M"]')

    out = catalog.get_product(db, "classic-tee")
    assert [(s.size, s.quantity) for s in out.sizes] == [("S", None), ("M", None), ("XL", None)]


def test_malformed_attribute_options_are_empty(db, make_product):
    tee = make_product("Classic Tee")
    add_attribute(db, tee, "Color", "not json")

    out = catalog.get_product(db, "classic-tee")
    assert out.attributes[0].options == []


def test_category_filter(db, make_product):
    tee = make_product("Logo Tee")
    make_product("Hoodie")
    add_category(db, "Tees", "tees", products=[tee])
    add_category(db, "Empty", "empty")

    assert [p.name for p in catalog.list_products(db, "tees")] == ["Logo Tee"]
    assert catalog.list_products(db, "empty") == []
    assert catalog.list_products(db, "no-such-category") == []


def test_products_endpoint_orders_for_display(client, make_product):
    make_product("Beanie")
    make_product("Jacket")
    make_product("Hoodie", price=None)

    resp = client.get("/api/products")

    assert resp.status_code == 200
    body = resp.json()
    assert [p["name"] for p in body] == ["Jacket", "Hoodie", "Beanie"]
    assert "price" not in body[1]


def test_product_by_slug_404(client):
    resp = client.get("/api/products/missing")
    assert resp.status_code == 404
    assert resp.json() == {"error": "Product not found"}


def test_categories_ordered(client, db):
    add_category(db, "Hoodies", "hoodies", sort_order=2)
    add_category(db, "Jackets", "jackets", sort_order=1)

    body = client.get("/api/categories").json()
    assert [c["slug"] for c in body] == ["jackets", "hoodies"]
    assert body[0]["sortOrder"] == 1


def test_public_sizes_endpoint(client, db, make_product):
    jeans = make_product("Denim Jeans")
    add_sizes(db, jeans, {'32"': 1, '28"': 3, '30"': 0})

    resp = client.get("/api/product/denim-jeans/sizes")

    assert resp.status_code == 200
    assert resp.headers["cache-control"] == "public, max-age=60"
    assert resp.json() == {
        "sizes": [{"size": '28"', "quantity": 3}, {"size": '30"', "quantity": 0}, {"size": '32"', "quantity": 1}]
    }
    assert client.get("/api/product/nope/sizes").status_code == 404


def test_tee_matched_as_a_word():
    assert product_sort_key("Steel Beanie")[0] == 5
    assert product_sort_key("Teen Cap")[0] == 7
    assert product_sort_key("Logo Tees Bundle")[0] == 2
