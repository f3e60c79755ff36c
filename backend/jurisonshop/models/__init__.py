from .inventory import Product
from .sales import Transaction, TRANSACTION_STATUS_COMPLETED, TRANSACTION_STATUS_REFUNDED

__all__ = [
    'Product',
    'Transaction', 'TRANSACTION_STATUS_COMPLETED', 'TRANSACTION_STATUS_REFUNDED',
]
