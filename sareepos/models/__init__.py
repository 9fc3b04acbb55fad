from .inventory import StockItem, DocumentSequence
from .sales import Purchase, PurchaseItem, Payment
from .transport import Transport

__all__ = [
    'StockItem', 'DocumentSequence',
    'Purchase', 'PurchaseItem', 'Payment',
    'Transport',
]
