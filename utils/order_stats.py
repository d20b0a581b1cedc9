import logging
from typing import Iterable

import pandas as pd

from constants.schemas import Order, OrderStats, OrderStatus, PaymentStatus

logger = logging.getLogger(__name__)

# Payment states that still expect money from the customer
UNPAID_PAYMENT_STATUSES = {None, PaymentStatus.UNPAID, PaymentStatus.PARTIAL}


def calculate_order_stats(orders: Iterable[Order]) -> OrderStats:
    """
    Calculate dashboard statistics for an order list.

    Args:
        orders: Orders to summarize

    Returns:
        OrderStats: Counts per status, unpaid count, total amount and the
        summed quantity of every product (in first-seen product order)
    """
    orders = list(orders)
    if not orders:
        return OrderStats()

    status_counts = {status: 0 for status in OrderStatus}
    unpaid = 0
    total_amount = 0.0
    item_rows = []

    for order in orders:
        if order.status is not None:
            status_counts[order.status] += 1
        if order.payment_status in UNPAID_PAYMENT_STATUSES:
            unpaid += 1
        total_amount += order.total or 0
        item_rows.extend({"product": item.product, "quantity": item.quantity} for item in order.items)

    product_quantities = {}
    if item_rows:
        items_df = pd.DataFrame(item_rows)
        totals = items_df.groupby("product", sort=False)["quantity"].sum()
        product_quantities = {product: int(qty) for product, qty in totals.items()}

    stats = OrderStats(
        total=len(orders),
        pending=status_counts[OrderStatus.PENDING],
        processing=status_counts[OrderStatus.PROCESSING],
        completed=status_counts[OrderStatus.SHIPPED],
        canceled=status_counts[OrderStatus.CANCELED],
        unpaid=unpaid,
        total_amount=total_amount,
        product_quantities=product_quantities,
    )
    logger.debug(f"Order stats: {stats.model_dump()}")
    return stats
