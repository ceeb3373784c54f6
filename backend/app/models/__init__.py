from .catalog import Brand, Product, ProductVariant
from .vendors import Vendor, VendorProductPricing, VendorVariantStock, vendor_brands
from .orders import Order, OrderItem
from .ledger import SaleRecord

__all__ = [
    'Brand', 'Product', 'ProductVariant',
    'Vendor', 'VendorProductPricing', 'VendorVariantStock', 'vendor_brands',
    'Order', 'OrderItem',
    'SaleRecord',
]
