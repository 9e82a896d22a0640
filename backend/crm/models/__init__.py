from .catalog import Product, StockMovement
from .orders import Order, OrderLine, SequenceCounter
from .ledger import LedgerEntry
from .leads import Lead, LeadInteraction, LeadTask

__all__ = [
    'Product', 'StockMovement',
    'Order', 'OrderLine', 'SequenceCounter',
    'LedgerEntry',
    'Lead', 'LeadTask', 'LeadInteraction',
]
