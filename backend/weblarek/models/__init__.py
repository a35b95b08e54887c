from .auth import User, UserRole, RefreshToken, ROLES, ROLE_ADMIN, ROLE_CUSTOMER
from .catalog import Product
from .orders import Order, OrderItem, Counter, ORDER_STATUSES, PAYMENT_TYPES

__all__ = [
    'User', 'UserRole', 'RefreshToken', 'ROLES', 'ROLE_ADMIN', 'ROLE_CUSTOMER',
    'Product',
    'Order', 'OrderItem', 'Counter', 'ORDER_STATUSES', 'PAYMENT_TYPES',
]
