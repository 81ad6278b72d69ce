from .catalog import Category, Subcategory, AttributeDefinition, Supplier, ProductVariant, Product
from .purchasing import Purchase, PurchaseItem
from .sales import Sale, SaleItem, Payment
from .documents import DocumentSequence

__all__ = [
    'Category', 'Subcategory', 'AttributeDefinition', 'Supplier',
    'ProductVariant', 'Product',
    'Purchase', 'PurchaseItem',
    'Sale', 'SaleItem', 'Payment',
    'DocumentSequence',
]
