#!/usr/bin/env python3
"""
Unit tests for DuplicateDetector.

Orders are built directly as Order models; every test uses an explicit
PhonePolicy so environment settings do not leak in.
"""

import os
import sys
import unittest

from pydantic import ValidationError

# Add the parent directory to the path to access utils
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from constants.data_models import DUPLICATE_REPORT_COLUMNS
from constants.schemas import DuplicateGroup, Order
from utils.duplicate_detector import (
    DuplicateDetector,
    detect_duplicate_orders,
    is_order_duplicate,
)
from utils.phone_normalizer import PhonePolicy, normalize_phone


def make_order(order_id, phone, name=None):
    return Order(
        id=order_id,
        order_number=f'ORD-{order_id}',
        customer_name=name or order_id,
        customer_phone=phone,
    )


class TestDuplicateDetector(unittest.TestCase):
    """Grouping behaviour of detect_duplicate_orders."""

    def setUp(self):
        self.policy = PhonePolicy()
        self.detector = DuplicateDetector(self.policy)

    def test_cosmetic_variant_is_grouped(self):
        """0912345678 and 0912-345-678 are the same customer."""
        a = make_order('A', '0912345678')
        b = make_order('B', '0987654321')
        c = make_order('C', '0912-345-678')

        groups = self.detector.detect_duplicate_orders([a, b, c])

        self.assertEqual(len(groups), 1)
        group = groups[0]
        self.assertEqual(group.normalized_phone, '0912345678')
        self.assertEqual(group.count, 2)
        self.assertEqual([o.id for o in group.orders], ['A', 'C'])
        self.assertEqual(group.phone, '0912345678')

    def test_empty_phones_never_group(self):
        orders = [make_order('A', ''), make_order('B', '')]
        self.assertEqual(self.detector.detect_duplicate_orders(orders), [])

    def test_missing_and_garbage_phones_never_group(self):
        orders = [
            make_order('A', None),
            make_order('B', None),
            make_order('C', 'n/a'),
            make_order('D', 'n/a'),
        ]
        self.assertEqual(self.detector.detect_duplicate_orders(orders), [])

    def test_singleton_is_excluded(self):
        self.assertEqual(self.detector.detect_duplicate_orders([make_order('A', '0911111111')]), [])

    def test_empty_input(self):
        self.assertEqual(self.detector.detect_duplicate_orders([]), [])

    def test_country_code_variants_group_with_first_phone_as_representative(self):
        orders = [
            make_order('A', '+886922222222'),
            make_order('B', '0922222222'),
            make_order('C', '0922222222'),
        ]

        groups = self.detector.detect_duplicate_orders(orders)

        self.assertEqual(len(groups), 1)
        self.assertEqual(groups[0].count, 3)
        self.assertEqual([o.id for o in groups[0].orders], ['A', 'B', 'C'])
        self.assertEqual(groups[0].phone, '+886922222222')
        self.assertEqual(groups[0].normalized_phone, '0922222222')

    def test_groups_follow_first_occurrence_not_size(self):
        orders = [
            make_order('A', '0922000000'),
            make_order('B', '0911000000'),
            make_order('C', '0911000000'),
            make_order('D', '0911-000-000'),
            make_order('E', '0922 000 000'),
        ]

        groups = self.detector.detect_duplicate_orders(orders)

        self.assertEqual([g.normalized_phone for g in groups], ['0922000000', '0911000000'])
        self.assertEqual([g.count for g in groups], [2, 3])
        self.assertEqual([o.id for o in groups[0].orders], ['A', 'E'])
        self.assertEqual([o.id for o in groups[1].orders], ['B', 'C', 'D'])

    def test_detection_is_deterministic(self):
        orders = [
            make_order('A', '0912345678'),
            make_order('B', '+886912345678'),
            make_order('C', '0933333333'),
            make_order('D', '0933-333-333'),
            make_order('E', ''),
        ]

        first = self.detector.detect_duplicate_orders(orders)
        second = self.detector.detect_duplicate_orders(orders)

        self.assertEqual(first, second)
        self.assertEqual([g.to_display_dict() for g in first], [g.to_display_dict() for g in second])

    def test_groups_partition_the_input(self):
        orders = [
            make_order(str(i), phone)
            for i, phone in enumerate(
                ['0911111111', '0922222222', '0911-111-111', '', '0933333333',
                 '+886922222222', '886911111111', None, '0944444444']
            )
        ]

        groups = self.detector.detect_duplicate_orders(orders)

        member_ids = [o.id for g in groups for o in g.orders]
        self.assertEqual(len(member_ids), len(set(member_ids)))
        self.assertTrue(set(member_ids).issubset({o.id for o in orders}))
        for group in groups:
            self.assertGreaterEqual(group.count, 2)
            for order in group.orders:
                self.assertEqual(normalize_phone(order.customer_phone, self.policy), group.normalized_phone)

        # Unique phones never show up
        self.assertNotIn('4', member_ids)
        self.assertNotIn('8', member_ids)

    def test_input_list_is_not_modified(self):
        orders = [make_order('A', '0912345678'), make_order('B', '0912345678')]
        snapshot = list(orders)

        self.detector.detect_duplicate_orders(orders)

        self.assertEqual(orders, snapshot)

    def test_accepts_a_generator(self):
        orders = (make_order(str(i), '0912345678') for i in range(3))
        groups = self.detector.detect_duplicate_orders(orders)
        self.assertEqual(groups[0].count, 3)

    def test_compare_last_digits_policy(self):
        detector = DuplicateDetector(PhonePolicy(country_codes=[], compare_last_digits=9))
        orders = [make_order('A', '0912345678'), make_order('B', '+886 912 345 678')]

        groups = detector.detect_duplicate_orders(orders)

        self.assertEqual(len(groups), 1)
        self.assertEqual(groups[0].normalized_phone, '912345678')

    def test_module_level_helper(self):
        orders = [make_order('A', '0912345678'), make_order('B', '0912345678')]
        groups = detect_duplicate_orders(orders, phone_policy=self.policy)
        self.assertEqual(len(groups), 1)


class TestIsOrderDuplicate(unittest.TestCase):
    """Per-order duplicate flag used by the order list."""

    def setUp(self):
        self.detector = DuplicateDetector(PhonePolicy())
        self.orders = [
            make_order('A', '0912345678'),
            make_order('B', '+886912345678'),
            make_order('C', '0987654321'),
            make_order('D', ''),
            make_order('E', ''),
        ]

    def test_shared_phone_is_duplicate(self):
        self.assertTrue(self.detector.is_order_duplicate(self.orders[0], self.orders))
        self.assertTrue(self.detector.is_order_duplicate(self.orders[1], self.orders))

    def test_unique_phone_is_not_duplicate(self):
        self.assertFalse(self.detector.is_order_duplicate(self.orders[2], self.orders))

    def test_empty_phone_is_never_duplicate(self):
        self.assertFalse(self.detector.is_order_duplicate(self.orders[3], self.orders))

    def test_order_outside_the_list(self):
        outsider = make_order('Z', '0987-654-321')
        self.assertFalse(self.detector.is_order_duplicate(outsider, self.orders))
        self.assertTrue(self.detector.is_order_duplicate(outsider, self.orders + [make_order('Y', '0987654321')]))

    def test_module_level_helper(self):
        self.assertTrue(is_order_duplicate(self.orders[0], self.orders, phone_policy=PhonePolicy()))


class TestDuplicateGroupOutput(unittest.TestCase):
    """DuplicateGroup model and report helpers."""

    def setUp(self):
        self.detector = DuplicateDetector(PhonePolicy())
        self.groups = self.detector.detect_duplicate_orders([
            make_order('A', '0912345678', name='Alice'),
            make_order('B', '0912-345-678', name='Bob'),
            make_order('C', '0933333333', name='Carol'),
            make_order('D', '0933333333', name='Dan'),
            make_order('E', '0933333333', name='Eve'),
        ])

    def test_count_follows_members(self):
        group = DuplicateGroup(
            normalized_phone='0912345678',
            phone='0912345678',
            orders=[make_order('A', '0912345678'), make_order('B', '0912345678')],
            count=5,
        )
        self.assertEqual(group.count, 2)

    def test_group_is_immutable(self):
        with self.assertRaises(ValidationError):
            self.groups[0].phone = '0000000000'

    def test_display_dict(self):
        data = self.groups[0].to_display_dict()
        self.assertEqual(
            data,
            {
                'phone': '0912345678',
                'normalizedPhone': '0912345678',
                'count': 2,
                'orders': [
                    {'id': 'A', 'orderNumber': 'ORD-A', 'customerName': 'Alice', 'customerPhone': '0912345678'},
                    {'id': 'B', 'orderNumber': 'ORD-B', 'customerName': 'Bob', 'customerPhone': '0912-345-678'},
                ],
            },
        )

    def test_model_dump_includes_count(self):
        dumped = self.groups[1].model_dump(by_alias=True)
        self.assertEqual(dumped['count'], 3)
        self.assertEqual(dumped['normalizedPhone'], '0933333333')

    def test_summarize(self):
        self.assertEqual(
            DuplicateDetector.summarize(self.groups),
            {'total_groups': 2, 'total_duplicate_orders': 5},
        )
        self.assertEqual(
            DuplicateDetector.summarize([]),
            {'total_groups': 0, 'total_duplicate_orders': 0},
        )

    def test_duplicate_order_ids(self):
        self.assertEqual(DuplicateDetector.duplicate_order_ids(self.groups), {'A', 'B', 'C', 'D', 'E'})

    def test_groups_to_dataframe(self):
        df = DuplicateDetector.groups_to_dataframe(self.groups)

        self.assertEqual(list(df.columns), DUPLICATE_REPORT_COLUMNS)
        self.assertEqual(len(df), 5)
        self.assertEqual(df['Group'].tolist(), [1, 1, 2, 2, 2])
        self.assertEqual(df['Customer Name'].tolist(), ['Alice', 'Bob', 'Carol', 'Dan', 'Eve'])
        self.assertEqual(df['Count'].tolist(), [2, 2, 3, 3, 3])

    def test_empty_dataframe_keeps_columns(self):
        df = DuplicateDetector.groups_to_dataframe([])
        self.assertTrue(df.empty)
        self.assertEqual(list(df.columns), DUPLICATE_REPORT_COLUMNS)


if __name__ == '__main__':
    unittest.main(verbosity=2)
