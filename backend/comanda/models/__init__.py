from .auth import User
from .catalog import Category, Product
from .tables import DiningTable
from .orders import Order, OrderItem
from .inventory import InventoryTransaction
from .payments import Payment
from .registers import RegisterSession, RegisterTransaction

__all__ = [
    'User',
    'Category', 'Product',
    'DiningTable',
    'Order', 'OrderItem',
    'InventoryTransaction',
    'Payment',
    'RegisterSession', 'RegisterTransaction',
]
