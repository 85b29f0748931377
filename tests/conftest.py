from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from storefront.config import Settings, get_settings
from storefront.main import app
from storefront.models.base import create_tables, get_db, make_session_factory
from storefront.models.category import Category, ProductCategory
from storefront.models.product import Product, ProductAttribute, ProductImage, ProductSizeInventory


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


def build_settings(**overrides) -> Settings:
    values = {"DATABASE_URL": "sqlite://"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture()
def make_client(session_factory):
    """Build a TestClient bound to the in-memory database and the given settings."""

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    def factory(**settings_overrides) -> TestClient:
        settings = build_settings(**settings_overrides)
        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_settings] = lambda: settings
        return TestClient(app)

    yield factory
    app.dependency_overrides.clear()


@pytest.fixture()
def client(make_client):
    return make_client()


@pytest.fixture()
def make_product(db):
    def factory(name, slug=None, price="19.99", **fields):
        product = Product(
            name=name,
            slug=slug or name.lower().replace(" ", "-"),
            price=Decimal(price) if price is not None else None,
            **fields,
        )
        db.add(product)
        db.commit()
        return product

    return factory


def add_image(db, product, url, alt=None, primary=False, sort_order=0):
    image = ProductImage(product_id=product.id, image_url=url, alt_text=alt, is_primary=primary, sort_order=sort_order)
    db.add(image)
    db.commit()
    return image


def add_category(db, name, slug, sort_order=0, products=()):
    category = Category(name=name, slug=slug, sort_order=sort_order)
    db.add(category)
    db.flush()
    for product in products:
        db.add(ProductCategory(product_id=product.id, category_id=category.id))
    db.commit()
    return category


def add_sizes(db, product, sizes):
    for size, quantity in sizes.items():
        db.add(ProductSizeInventory(product_id=product.id, size=size, quantity=quantity))
    db.commit()


def add_attribute(db, product, name, options_json):
    attr = ProductAttribute(product_id=product.id, name=name, options=options_json)
    db.add(attr)
    db.commit()
    return attr
