# sales/models/__init__.py

from .customer import Customer
from .customer_order import CustomerOrder, CustomerOrderItem
from .invoice import Invoice, InvoiceItem, InvoicePayment
from .quotation import Quotation, QuotationItem

__all__ = [
    "Customer",
    "Quotation",
    "QuotationItem",
    "Invoice",
    "InvoiceItem",
    "InvoicePayment",
    "CustomerOrder",
    "CustomerOrderItem",
]
