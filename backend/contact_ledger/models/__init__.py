from .contacts import Customer, Supplier
from .ledger import LedgerEntry
from .documents import SalesOrder, Purchase, Payment, SalesReturn, PurchaseReturn

__all__ = [
    'Customer', 'Supplier',
    'LedgerEntry',
    'SalesOrder', 'Purchase', 'Payment', 'SalesReturn', 'PurchaseReturn',
]
