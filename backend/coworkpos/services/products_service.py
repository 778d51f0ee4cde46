# Overview: Café catalogue; product listing, creation, updates and guarded deletion.

from __future__ import annotations

from ..extensions import db
from ..models import Inventory, Product, Recipe, StockMovement
from ..validation import ConflictError, NotFoundError
from .concurrency import run_with_retry

PRODUCT_MUTABLE_FIELDS = {"name", "price_cents", "category", "is_active"}

DEFAULT_PRODUCTS = (
    ("Café expresso", 1500, "beverage"),
    ("Café américain", 1800, "beverage"),
    ("Thé à la menthe", 1200, "beverage"),
    ("Eau minérale", 1000, "beverage"),
    ("Jus d'orange", 2000, "beverage"),
)


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def list_products(*, category: str | None = None, active: bool | None = None) -> list[Product]:
    query = db.session.query(Product)
    if category is not None:
        query = query.filter(Product.category == category)
    if active is not None:
        query = query.filter(Product.is_active.is_(active))
    return query.order_by(Product.name.asc(), Product.id.asc()).all()


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Produit non trouvé")
    return product


def create_product(patch: dict) -> Product:
    def _op():
        product = Product(is_active=True)
        apply_product_patch(product, patch)
        db.session.add(product)
        db.session.commit()
        return product

    return run_with_retry(_op)


def update_product(product_id: int, patch: dict) -> Product:
    def _op():
        product = get_product(product_id)
        apply_product_patch(product, patch)
        db.session.commit()
        return product

    return run_with_retry(_op)


def delete_product(product_id: int) -> None:
    """
    Hard delete. Products still referenced by stock records, movements or
    recipes are kept; deactivate them instead (isActive=false).
    """
    def _op():
        product = get_product(product_id)
        for model in (Inventory, StockMovement, Recipe):
            if db.session.query(model.id).filter(model.product_id == product.id).first() is not None:
                raise ConflictError(
                    "Ce produit est lié au stock ou à une recette; désactivez-le plutôt que de le supprimer"
                )
        db.session.delete(product)
        db.session.commit()

    run_with_retry(_op)


def seed_default_products() -> int:
    """Insert the default café menu when the catalogue is empty. Returns rows added."""
    if db.session.query(Product.id).first() is not None:
        return 0
    for name, price_cents, category in DEFAULT_PRODUCTS:
        db.session.add(Product(name=name, price_cents=price_cents, category=category, is_active=True))
    db.session.commit()
    return len(DEFAULT_PRODUCTS)
