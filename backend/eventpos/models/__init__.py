from .inventory import Product, PurchaseCounter
from .purchases import Purchase, PurchaseItem, Return
from .cashbox import CashboxSession
from .audit import AuditLogEntry

__all__ = [
    'Product', 'PurchaseCounter',
    'Purchase', 'PurchaseItem', 'Return',
    'CashboxSession',
    'AuditLogEntry',
]
