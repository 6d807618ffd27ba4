# sales/services/lifecycle.py

"""
SALES DOCUMENT LIFECYCLES

Allow-lists for quotations, invoices and customer orders plus the
timestamp field stamped when a document enters a status.
"""

from core.lifecycle import Lifecycle
from sales.models import CustomerOrder, Invoice, Quotation

# ============================================================
# QUOTATION
# ============================================================
Q = Quotation.Status

QUOTATION_LIFECYCLE = Lifecycle(
    label="Quotation",
    transitions={
        Q.DRAFT: {Q.PENDING_APPROVAL, Q.SENT, Q.CANCELLED},
        Q.PENDING_APPROVAL: {Q.APPROVED, Q.REJECTED, Q.CANCELLED},
        Q.APPROVED: {Q.SENT, Q.CANCELLED},
        Q.SENT: {Q.ACKNOWLEDGED, Q.NEGOTIATION, Q.ACCEPTED, Q.REJECTED, Q.EXPIRED, Q.CANCELLED},
        Q.ACKNOWLEDGED: {Q.NEGOTIATION, Q.ACCEPTED, Q.REJECTED, Q.EXPIRED, Q.CANCELLED},
        Q.NEGOTIATION: {Q.SENT, Q.ACCEPTED, Q.REJECTED, Q.EXPIRED, Q.CANCELLED},
        Q.ACCEPTED: {Q.CONVERTED},
    },
    terminal_states=frozenset({Q.CONVERTED, Q.REJECTED, Q.EXPIRED, Q.CANCELLED}),
)

QUOTATION_TIMESTAMPS = {
    Q.APPROVED: "approved_at",
    Q.SENT: "sent_at",
    Q.ACCEPTED: "accepted_at",
    Q.REJECTED: "rejected_at",
    Q.EXPIRED: "expired_at",
    Q.CONVERTED: "converted_at",
    Q.CANCELLED: "cancelled_at",
}

# ============================================================
# INVOICE
# ============================================================
INV = Invoice.Status

INVOICE_LIFECYCLE = Lifecycle(
    label="Invoice",
    transitions={
        INV.DRAFT: {INV.SENT, INV.CANCELLED},
        INV.SENT: {INV.PAID, INV.PARTIALLY_PAID, INV.OVERDUE, INV.CANCELLED},
        INV.PARTIALLY_PAID: {INV.PAID, INV.OVERDUE, INV.CANCELLED},
        INV.OVERDUE: {INV.PAID, INV.PARTIALLY_PAID, INV.CANCELLED},
    },
    terminal_states=frozenset({INV.PAID, INV.CANCELLED}),
)

INVOICE_TIMESTAMPS = {
    INV.SENT: "sent_at",
    INV.PAID: "paid_at",
    INV.OVERDUE: "overdue_at",
    INV.CANCELLED: "cancelled_at",
}

# ============================================================
# CUSTOMER ORDER
# ============================================================
C = CustomerOrder.Status

CUSTOMER_ORDER_LIFECYCLE = Lifecycle(
    label="Customer order",
    transitions={
        C.DRAFT: {C.CONFIRMED, C.CANCELLED},
        C.CONFIRMED: {C.IN_PRODUCTION, C.CANCELLED},
        C.IN_PRODUCTION: {C.QUALITY_CHECK, C.CANCELLED},
        C.QUALITY_CHECK: {C.READY_FOR_DISPATCH, C.IN_PRODUCTION},
        C.READY_FOR_DISPATCH: {C.DISPATCHED},
        C.DISPATCHED: {C.DELIVERED},
    },
    terminal_states=frozenset({C.DELIVERED, C.CANCELLED}),
)

CUSTOMER_ORDER_TIMESTAMPS = {
    C.CONFIRMED: "confirmed_at",
    C.IN_PRODUCTION: "production_started_at",
    C.DISPATCHED: "dispatched_at",
    C.DELIVERED: "delivered_at",
    C.CANCELLED: "cancelled_at",
}
