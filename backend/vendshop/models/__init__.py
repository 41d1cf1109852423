from .auth import User, SessionToken
from .catalog import Product
from .ledger import Purchase, Transaction
from .settings import Settings

__all__ = [
    'User', 'SessionToken',
    'Product',
    'Purchase', 'Transaction',
    'Settings',
]
