import logging
from typing import Dict, Iterable, List, Optional

import pandas as pd

from constants.data_models import DUPLICATE_REPORT_COLUMNS
from constants.schemas import DuplicateGroup, Order
from utils.phone_normalizer import PhonePolicy, load_phone_policy, normalize_phone

logger = logging.getLogger(__name__)


class DuplicateDetector:
    """
    Flags orders placed with the same customer phone number.

    The detector keeps no state between runs: every call works on the order list
    it is given, so callers re-run it after fetching a fresh list.
    """

    def __init__(self, phone_policy: Optional[PhonePolicy] = None) -> None:
        """
        Args:
            phone_policy (PhonePolicy): Normalization rules (default: loaded from the environment)
        """
        self.phone_policy = phone_policy or load_phone_policy()

    def normalize(self, phone) -> Optional[str]:
        return normalize_phone(phone, self.phone_policy)

    def detect_duplicate_orders(self, orders: Iterable[Order]) -> List[DuplicateGroup]:
        """
        Group orders that share a normalized phone number.

        Orders without a usable phone are skipped. Only phones used by two or
        more orders produce a group. Groups come back in the order their phone
        first appears in `orders`, and members keep their input order.

        Args:
            orders: Orders in the order they were fetched

        Returns:
            List[DuplicateGroup]: One group per duplicated phone, possibly empty
        """
        buckets: Dict[str, List[Order]] = {}
        skipped = 0
        scanned = 0

        for order in orders:
            scanned += 1
            key = self.normalize(order.customer_phone)
            if key is None:
                skipped += 1
                continue
            buckets.setdefault(key, []).append(order)

        groups = [
            DuplicateGroup(normalized_phone=key, phone=members[0].customer_phone, orders=members)
            for key, members in buckets.items()
            if len(members) > 1
        ]

        logger.info(
            f"Duplicate check: {scanned} orders scanned, {len(groups)} duplicate phone groups found"
        )
        if skipped:
            logger.debug(f"Duplicate check: skipped {skipped} orders without a usable phone")
        return groups

    def is_order_duplicate(self, order: Order, all_orders: Iterable[Order]) -> bool:
        """
        Check whether the phone of `order` appears at least twice in `all_orders`.

        Meant for an `order` taken from `all_orders`, where it counts as one of
        the two matches. An order outside the list with a single match in it
        returns False.
        """
        key = self.normalize(order.customer_phone)
        if key is None:
            return False

        matches = 0
        for other in all_orders:
            if self.normalize(other.customer_phone) == key:
                matches += 1
                if matches > 1:
                    return True
        return False

    @staticmethod
    def duplicate_order_ids(groups: Iterable[DuplicateGroup]) -> set:
        """IDs of every order that belongs to a duplicate group"""
        return {order.id for group in groups for order in group.orders}

    @staticmethod
    def summarize(groups: List[DuplicateGroup]) -> Dict[str, int]:
        return {
            "total_groups": len(groups),
            "total_duplicate_orders": sum(group.count for group in groups),
        }

    @staticmethod
    def groups_to_dataframe(groups: List[DuplicateGroup]) -> pd.DataFrame:
        """
        Flatten duplicate groups into one row per order for display or CSV export.

        Args:
            groups: Result of detect_duplicate_orders

        Returns:
            pandas.DataFrame: Rows with DUPLICATE_REPORT_COLUMNS, group numbers starting at 1
        """
        rows = []
        for group_number, group in enumerate(groups, start=1):
            for order in group.orders:
                rows.append(
                    {
                        "Group": group_number,
                        "Phone": group.phone,
                        "Normalized Phone": group.normalized_phone,
                        "Count": group.count,
                        "Order ID": order.id,
                        "Order Number": order.order_number,
                        "Customer Name": order.customer_name,
                        "Customer Phone": order.customer_phone,
                    }
                )
        return pd.DataFrame(rows, columns=DUPLICATE_REPORT_COLUMNS)


def detect_duplicate_orders(
    orders: Iterable[Order], phone_policy: Optional[PhonePolicy] = None
) -> List[DuplicateGroup]:
    """Run a one-off duplicate check with the given (or environment) phone policy."""
    return DuplicateDetector(phone_policy).detect_duplicate_orders(orders)


def is_order_duplicate(
    order: Order, all_orders: Iterable[Order], phone_policy: Optional[PhonePolicy] = None
) -> bool:
    return DuplicateDetector(phone_policy).is_order_duplicate(order, all_orders)
