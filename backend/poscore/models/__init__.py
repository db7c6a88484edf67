from .catalog import Product, Client
from .sales import Sale, SaleLine
from .cash import CashMovement, CashClosure
from .documents import DocumentSequence, LedgerEvent

__all__ = [
    'Product', 'Client',
    'Sale', 'SaleLine',
    'CashMovement', 'CashClosure',
    'DocumentSequence', 'LedgerEvent',
]
