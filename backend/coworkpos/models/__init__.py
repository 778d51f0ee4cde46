from .auth import User, SessionToken
from .catalog import Product, PRODUCT_CATEGORIES
from .sales import (
    Transaction,
    DailyStats,
    TRANSACTION_TYPES,
    PAYMENT_METHODS,
    STOCK_STATUS_NOT_APPLICABLE,
    STOCK_STATUS_SYNCED,
    STOCK_STATUS_NEEDS_RECONCILIATION,
)
from .inventory import Inventory, StockMovement, Ingredient, IngredientMovement, Recipe, RecipeIngredient, STOCK_ACTIONS
from .expenses import Expense, EXPENSE_CATEGORIES
from .rentals import RoomRental, ROOM_TYPES

__all__ = [
    'User', 'SessionToken',
    'Product', 'PRODUCT_CATEGORIES',
    'Transaction', 'DailyStats', 'TRANSACTION_TYPES', 'PAYMENT_METHODS',
    'STOCK_STATUS_NOT_APPLICABLE', 'STOCK_STATUS_SYNCED', 'STOCK_STATUS_NEEDS_RECONCILIATION',
    'Inventory', 'StockMovement', 'Ingredient', 'IngredientMovement', 'Recipe', 'RecipeIngredient',
    'STOCK_ACTIONS',
    'Expense', 'EXPENSE_CATEGORIES',
    'RoomRental', 'ROOM_TYPES',
]
