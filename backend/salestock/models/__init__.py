from .products import Product
from .sales import Sale, SaleItem
from .ledger import StockMovement, ActivityLog
from .auth import User, SessionToken
from .settings import CompanySettings

__all__ = [
    'Product',
    'Sale', 'SaleItem',
    'StockMovement', 'ActivityLog',
    'User', 'SessionToken',
    'CompanySettings',
]
