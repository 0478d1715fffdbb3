from .user import User, UserType
from .product import Product, ProductStatus
from .product_variant import ProductVariant
from .order import Order, OrderStatus
from .order_item import OrderItem
from .affiliate_referral import AffiliateReferral
from .affiliate_commission import AffiliateCommission, CommissionStatus
from .invoice import Invoice, InvoiceStatus
from .invoice_item import InvoiceItem
from .seller_settings import SellerSettings
from .platform_settings import PlatformSettings

__all__ = [
    'User',
    'UserType',
    'Product',
    'ProductStatus',
    'ProductVariant',
    'Order',
    'OrderStatus',
    'OrderItem',
    'AffiliateReferral',
    'AffiliateCommission',
    'CommissionStatus',
    'Invoice',
    'InvoiceStatus',
    'InvoiceItem',
    'SellerSettings',
    'PlatformSettings'
]
