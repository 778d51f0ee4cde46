from __future__ import annotations

from ..extensions import db
from coworkpos.money import from_cents
from coworkpos.time_utils import to_utc_z

STOCK_ACTIONS = ("add", "remove", "adjust")


class Inventory(db.Model):
    """
    Discrete-unit stock record for one Product (bottled drinks, snacks, etc.).

    INVARIANT: quantity >= 0. Every quantity change goes through
    inventory_service and appends a StockMovement in the same DB transaction.
    """
    __tablename__ = "inventory"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, unique=True, index=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    min_threshold = db.Column(db.Integer, nullable=False, default=5)

    # Unit purchase price; drives auto-expenses on restock and COGS
    purchase_price_cents = db.Column(db.Integer, nullable=True)

    expiration_date = db.Column(db.DateTime(timezone=True), nullable=True)
    last_restock_date = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    product = db.relationship("Product", backref=db.backref("inventory", uselist=False))

    def __repr__(self) -> str:
        return f"<Inventory id={self.id} product_id={self.product_id} quantity={self.quantity}>"

    def to_dict(self, include_product: bool = False) -> dict:
        data = {
            "id": self.id,
            "productId": self.product_id,
            "quantity": self.quantity,
            "minThreshold": self.min_threshold,
            "purchasePrice": from_cents(self.purchase_price_cents),
            "expirationDate": to_utc_z(self.expiration_date),
            "lastRestockDate": to_utc_z(self.last_restock_date),
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
        if include_product:
            data["product"] = self.product.to_dict() if self.product else None
        return data


class StockMovement(db.Model):
    """
    Append-only audit row for one Inventory quantity change.

    quantity is signed: +n for add, -n for remove, the delta for adjust.
    transaction_id is a plain reference (no FK) so deleting a sale keeps its
    movements intact.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_product_timestamp", "product_id", "timestamp"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    inventory_id = db.Column(db.Integer, db.ForeignKey("inventory.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    action_type = db.Column(db.String(16), nullable=False)
    reason = db.Column(db.Text, nullable=True)

    transaction_id = db.Column(db.Integer, nullable=True, index=True)
    performed_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    timestamp = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "inventoryId": self.inventory_id,
            "productId": self.product_id,
            "quantity": self.quantity,
            "actionType": self.action_type,
            "reason": self.reason,
            "transactionId": self.transaction_id,
            "performedById": self.performed_by_id,
            "timestamp": to_utc_z(self.timestamp),
        }


class Ingredient(db.Model):
    """
    Measured raw material (coffee beans, milk, sugar) consumed through recipes.

    INVARIANT: quantity_in_stock >= 0. Quantities are fractional and expressed
    in `unit` (g, ml, piece...).
    """
    __tablename__ = "ingredients"
    __table_args__ = (
        db.CheckConstraint("quantity_in_stock >= 0", name="ck_ingredients_quantity_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    unit = db.Column(db.String(32), nullable=False)

    # Price per unit
    purchase_price_cents = db.Column(db.Integer, nullable=True)

    quantity_in_stock = db.Column(db.Float, nullable=False, default=0.0)
    min_threshold = db.Column(db.Float, nullable=False, default=5.0)

    expiration_date = db.Column(db.DateTime(timezone=True), nullable=True)
    last_restock_date = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Ingredient id={self.id} name={self.name!r} quantity_in_stock={self.quantity_in_stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "unit": self.unit,
            "purchasePrice": from_cents(self.purchase_price_cents),
            "quantityInStock": self.quantity_in_stock,
            "minThreshold": self.min_threshold,
            "expirationDate": to_utc_z(self.expiration_date),
            "lastRestockDate": to_utc_z(self.last_restock_date),
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class IngredientMovement(db.Model):
    """Append-only audit row for one Ingredient quantity change."""
    __tablename__ = "ingredient_movements"
    __table_args__ = (
        db.Index("ix_ingredient_movements_ingredient_timestamp", "ingredient_id", "timestamp"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    ingredient_id = db.Column(db.Integer, db.ForeignKey("ingredients.id"), nullable=False)

    quantity = db.Column(db.Float, nullable=False)
    action_type = db.Column(db.String(16), nullable=False)
    reason = db.Column(db.Text, nullable=True)

    # Plain references; recipes and sales may be deleted later
    transaction_id = db.Column(db.Integer, nullable=True, index=True)
    recipe_id = db.Column(db.Integer, nullable=True)

    performed_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    timestamp = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ingredientId": self.ingredient_id,
            "quantity": self.quantity,
            "actionType": self.action_type,
            "reason": self.reason,
            "transactionId": self.transaction_id,
            "recipeId": self.recipe_id,
            "performedById": self.performed_by_id,
            "timestamp": to_utc_z(self.timestamp),
        }


class Recipe(db.Model):
    """
    Binds a sellable Product to the ingredients one unit of it consumes.
    """
    __tablename__ = "recipes"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    ingredients = db.relationship(
        "RecipeIngredient",
        backref="recipe",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="RecipeIngredient.id",
    )

    def to_dict(self, include_ingredients: bool = True) -> dict:
        data = {
            "id": self.id,
            "productId": self.product_id,
            "name": self.name,
            "description": self.description,
        }
        if include_ingredients:
            data["ingredients"] = [ri.to_dict() for ri in self.ingredients]
        return data


class RecipeIngredient(db.Model):
    """Per-unit quantity of one Ingredient in a Recipe."""
    __tablename__ = "recipe_ingredients"
    __table_args__ = (
        db.UniqueConstraint("recipe_id", "ingredient_id", name="uq_recipe_ingredients_recipe_ingredient"),
        db.CheckConstraint("quantity > 0", name="ck_recipe_ingredients_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    recipe_id = db.Column(db.Integer, db.ForeignKey("recipes.id"), nullable=False, index=True)
    ingredient_id = db.Column(db.Integer, db.ForeignKey("ingredients.id"), nullable=False)
    quantity = db.Column(db.Float, nullable=False)

    ingredient = db.relationship("Ingredient")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ingredientId": self.ingredient_id,
            "quantity": self.quantity,
            "ingredient": self.ingredient.to_dict() if self.ingredient else None,
        }
