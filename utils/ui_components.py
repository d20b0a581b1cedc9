from typing import List, Optional, Set

import pandas as pd
import streamlit as st

from constants.schemas import DuplicateGroup, Order, OrderStats
from utils.duplicate_detector import DuplicateDetector


def upload_key(uploaded_file) -> Optional[str]:
    """Identity of an upload. Replacing a file with one of the same name gets a new file_id."""
    if uploaded_file is None:
        return None
    return uploaded_file.file_id


def render_header():
    """Render the application header"""
    st.title("Order Dashboard")
    st.markdown(
        """
    Upload the order sheet export to:
    - Review order and payment status counts
    - Find orders placed more than once with the same phone number
    """
    )


def render_stats(stats: OrderStats):
    """Render the summary metrics row"""
    cols = st.columns(6)
    cols[0].metric("Orders", stats.total)
    cols[1].metric("Pending", stats.pending)
    cols[2].metric("Processing", stats.processing)
    cols[3].metric("Shipped", stats.completed)
    cols[4].metric("Canceled", stats.canceled)
    cols[5].metric("Unpaid", stats.unpaid)

    st.caption(f"Total amount: {stats.total_amount:,.0f}")
    if stats.product_quantities:
        products_df = pd.DataFrame(
            list(stats.product_quantities.items()), columns=["Product", "Quantity"]
        )
        st.dataframe(products_df, hide_index=True, use_container_width=True)


def render_orders_table(orders: List[Order], duplicate_ids: Set[str]):
    """Render the order list, flagging orders that share a phone number"""
    if not orders:
        st.info("No orders loaded")
        return

    rows = [
        {
            "Duplicate": "⚠️" if order.id in duplicate_ids else "",
            "Order Number": order.order_number,
            "Customer": order.customer_name,
            "Phone": order.customer_phone or "",
            "Status": order.status.display if order.status else "",
            "Payment": order.payment_status.display if order.payment_status else "",
            "Total": order.total,
            "Due Date": order.due_date,
        }
        for order in orders
    ]
    st.dataframe(pd.DataFrame(rows), hide_index=True, use_container_width=True)


def render_duplicate_groups(groups: List[DuplicateGroup], is_auto_alert: bool = False):
    """
    Render the result of a duplicate check.

    Args:
        groups: Result of DuplicateDetector.detect_duplicate_orders
        is_auto_alert: Render as an alert raised without the user asking for it
    """
    if not groups:
        st.success("No duplicate orders found: every phone number is unique")
        return

    summary = DuplicateDetector.summarize(groups)
    message = (
        f"Found {summary['total_groups']} duplicated phone numbers across "
        f"{summary['total_duplicate_orders']} orders"
    )
    if is_auto_alert:
        st.error(f"⚠️ {message}, please check them")
    else:
        st.warning(message)

    for group_number, group in enumerate(groups, start=1):
        with st.expander(f"Group #{group_number}: {group.phone} ({group.count} orders)", expanded=True):
            members_df = pd.DataFrame(
                [
                    {
                        "#": position,
                        "Order Number": order.order_number,
                        "Customer": order.customer_name,
                        "Phone": order.customer_phone,
                    }
                    for position, order in enumerate(group.orders, start=1)
                ]
            )
            st.dataframe(members_df, hide_index=True, use_container_width=True)

    report_df = DuplicateDetector.groups_to_dataframe(groups)
    st.download_button(
        "Download duplicate report (CSV)",
        data=report_df.to_csv(index=False).encode("utf-8-sig"),
        file_name="duplicate_orders.csv",
        mime="text/csv",
    )
