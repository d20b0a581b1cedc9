import logging
import os

import streamlit as st
from dotenv import load_dotenv

from utils.data_parser import DataParser, OrderParseError
from utils.duplicate_detector import DuplicateDetector
from utils.order_stats import calculate_order_stats
from utils.ui_components import (
    render_duplicate_groups,
    render_header,
    render_orders_table,
    render_stats,
    upload_key,
)

# Load environment variables
load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Set page configuration
st.set_page_config(
    page_title="Order Dashboard",
    page_icon="📦",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Initialize session state
if "orders" not in st.session_state:
    st.session_state.orders = []
if "orders_source" not in st.session_state:
    st.session_state.orders_source = None
if "load_error" not in st.session_state:
    st.session_state.load_error = None
if "duplicate_groups" not in st.session_state:
    st.session_state.duplicate_groups = None
if "detector" not in st.session_state:
    st.session_state.detector = DuplicateDetector()


def invalidate_results():
    """Drop results computed from the previous order list"""
    st.session_state.duplicate_groups = None


def clear_orders():
    """Forget the loaded file, its orders and any results"""
    st.session_state.orders = []
    st.session_state.orders_source = None
    st.session_state.load_error = None
    invalidate_results()


def load_orders(uploaded_file):
    """Parse an uploaded order CSV into session state"""
    parser = DataParser()
    st.session_state.load_error = None
    try:
        orders_df = parser.parse_orders(uploaded_file)
        st.session_state.orders = parser.to_orders(orders_df)
        if parser.read_error:
            st.session_state.load_error = f"Could not read {uploaded_file.name}: {parser.read_error}"
    except OrderParseError as e:
        logger.error(f"Failed to parse orders: {str(e)}")
        st.session_state.load_error = f"Could not read orders: {str(e)}"
        st.session_state.orders = []
    st.session_state.orders_source = upload_key(uploaded_file)
    invalidate_results()
    logger.info(f"Loaded {len(st.session_state.orders)} orders from {uploaded_file.name}")


def main():
    render_header()

    with st.sidebar:
        uploaded_file = st.file_uploader("Order sheet export (CSV)", type=["csv"])
        if upload_key(uploaded_file) != st.session_state.orders_source:
            if uploaded_file is None:
                clear_orders()
            else:
                load_orders(uploaded_file)
        if st.button("Reload file", disabled=uploaded_file is None):
            uploaded_file.seek(0)
            load_orders(uploaded_file)

    orders = st.session_state.orders
    detector = st.session_state.detector

    if st.session_state.load_error:
        st.error(st.session_state.load_error)

    if not orders:
        if not st.session_state.load_error:
            st.info("Upload an order CSV to get started")
        return

    render_stats(calculate_order_stats(orders))

    if st.button("Check duplicates", type="primary"):
        st.session_state.duplicate_groups = detector.detect_duplicate_orders(orders)

    groups = st.session_state.duplicate_groups
    if groups is not None:
        render_duplicate_groups(groups)

    duplicate_ids = DuplicateDetector.duplicate_order_ids(groups) if groups else set()
    st.subheader("Orders")
    render_orders_table(orders, duplicate_ids)


if __name__ == "__main__":
    main()
