from .customers import Customer, CustomerWallet, WalletTransaction
from .loyalty import LoyaltyEarning, LoyaltyRedemption
from .orders import OrderStatus, Order, OrderPaymentHistory, OrderSequence, CartItem
from .settings import BusinessSettings
from .notifications import Notification, PushToken

__all__ = [
    'Customer', 'CustomerWallet', 'WalletTransaction',
    'LoyaltyEarning', 'LoyaltyRedemption',
    'OrderStatus', 'Order', 'OrderPaymentHistory', 'OrderSequence', 'CartItem',
    'BusinessSettings',
    'Notification', 'PushToken',
]
