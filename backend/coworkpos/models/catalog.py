from __future__ import annotations

from ..extensions import db
from coworkpos.money import from_cents

PRODUCT_CATEGORIES = ("beverage", "food", "other")


class Product(db.Model):
    """
    Café catalogue item.

    Products with category "beverage" or "other" may be tracked as discrete
    units in Inventory. Prepared drinks are tracked through a Recipe instead.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_category_active", "category", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)

    # Authoritative storage in cents (API speaks dirhams)
    price_cents = db.Column(db.Integer, nullable=False)

    category = db.Column(db.String(32), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} category={self.category!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "price": from_cents(self.price_cents),
            "category": self.category,
            "isActive": self.is_active,
        }
