from .tenancy import Tenant, Location, SUBSCRIPTION_STATUSES
from .catalog import Product, ProductVariant
from .inventory import Inventory, StockMovement, MOVEMENT_STOCK_IN, MOVEMENT_STOCK_OUT
from .invoices import Invoice, InvoiceItem, InvoiceSequence
from .auth import (
    User, SessionToken,
    ROLES, ROLE_SUPER_ADMIN, ROLE_STORE_ADMIN, ROLE_LOCATION_USER,
)
from .security import SecurityEvent

__all__ = [
    'Tenant', 'Location', 'SUBSCRIPTION_STATUSES',
    'Product', 'ProductVariant',
    'Inventory', 'StockMovement', 'MOVEMENT_STOCK_IN', 'MOVEMENT_STOCK_OUT',
    'Invoice', 'InvoiceItem', 'InvoiceSequence',
    'User', 'SessionToken',
    'ROLES', 'ROLE_SUPER_ADMIN', 'ROLE_STORE_ADMIN', 'ROLE_LOCATION_USER',
    'SecurityEvent',
]
