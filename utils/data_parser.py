import json
import logging
import math
import re
from typing import Any, Dict, Iterable, List, Mapping, Union

import pandas as pd

from constants.data_models import ORDER_COLUMNS, SHEET_COLUMN_ALIASES
from constants.schemas import Order, OrderItem, OrderStatus, PaymentStatus

logger = logging.getLogger(__name__)

# "原味蘿蔔糕 x2", "芋頭粿 × 1"
ITEM_PATTERN = re.compile(r"^(.+?)\s*[xX×]\s*(\d+)$")
ITEM_SEPARATORS = re.compile(r"[,，]")

# canonical field -> sheet headers carrying the same value
_FIELD_HEADERS: Dict[str, List[str]] = {}
for _header, _field in SHEET_COLUMN_ALIASES.items():
    _FIELD_HEADERS.setdefault(_field, []).append(_header)

# fields that may also arrive inside a nested "customer" object
_CUSTOMER_FIELDS = {"customerName": "name", "customerPhone": "phone", "note": "note"}


class OrderParseError(ValueError):
    """Raised when an order row cannot be turned into an Order at all."""

    def __init__(self, message, *, index=None):
        super().__init__(message)
        self.index = index


def _is_missing(value) -> bool:
    if value is None:
        return True
    if isinstance(value, (list, tuple, dict)):
        return False
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _clean_text(value) -> str:
    if _is_missing(value):
        return ""
    return str(value).strip()


def _parse_amount(value) -> float:
    text = _clean_text(value).replace(",", "").replace("$", "")
    if not text:
        return 0.0
    try:
        amount = float(text)
    except ValueError:
        logger.warning(f"Could not parse amount {value!r}, using 0")
        return 0.0
    # float() accepts "nan", "inf" and overflowing literals like "1e400"
    if not math.isfinite(amount):
        logger.warning(f"Non-finite amount {value!r}, using 0")
        return 0.0
    return amount


class DataParser:
    def __init__(self):
        """Initialize the DataParser with required tracking variables."""
        self._logged_issues = set()
        # Reason the last parse_orders call returned an empty frame, if it failed
        self.read_error = None

    def _log_once(self, message: str) -> None:
        if message not in self._logged_issues:
            self._logged_issues.add(message)
            logger.warning(message)

    def parse_orders(self, orders_file) -> pd.DataFrame:
        """Load and preprocess an order sheet CSV export.

        A file that cannot be read is logged, recorded in `read_error` and
        yields an empty frame with the canonical columns.

        Args:
            orders_file: Path or uploaded file object of the orders CSV

        Returns:
            pandas.DataFrame: Orders with canonical column names, every value a string
        """
        self.read_error = None
        try:
            # Read everything as text so phone numbers keep their leading zeros
            df = pd.read_csv(orders_file, dtype=str, keep_default_na=False)
        except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
            logger.error(f"Error reading orders file: {str(e)}")
            self.read_error = str(e)
            return pd.DataFrame(columns=ORDER_COLUMNS)

        # Normalize column names
        df.columns = [str(col).strip() for col in df.columns]

        unnamed_cols = [col for col in df.columns if col.startswith("Unnamed:")]
        if unnamed_cols:
            df = df.drop(columns=unnamed_cols)
            logger.info(f"Dropped {len(unnamed_cols)} unnamed columns")

        renames = {col: SHEET_COLUMN_ALIASES[col] for col in df.columns if col in SHEET_COLUMN_ALIASES}
        if renames:
            df = df.rename(columns=renames)

        for col in ORDER_COLUMNS:
            if col not in df.columns:
                logger.warning(f"Column '{col}' not found in orders file")
                df[col] = ""

        logger.info(f"Parsed orders file with {len(df)} rows")
        return df

    def to_orders(self, rows: Union[pd.DataFrame, Iterable[Mapping[str, Any]]]) -> List[Order]:
        """Convert raw order rows into Order models.

        Args:
            rows: DataFrame from parse_orders, or an iterable of dicts from an API

        Returns:
            List[Order]: Orders in the same order as the input rows
        """
        if isinstance(rows, pd.DataFrame):
            rows = rows.to_dict(orient="records")
        return [self.parse_order_row(row, index) for index, row in enumerate(rows)]

    def _get(self, row: Mapping[str, Any], field: str, *fallbacks: str):
        for key in (field,) + fallbacks:
            if key in row and not _is_missing(row[key]):
                return row[key]
        for header in _FIELD_HEADERS.get(field, []):
            if header in row and not _is_missing(row[header]):
                return row[header]
        customer = row.get("customer")
        if isinstance(customer, Mapping) and field in _CUSTOMER_FIELDS:
            value = customer.get(_CUSTOMER_FIELDS[field])
            if not _is_missing(value):
                return value
        return None

    def _parse_status(self, value, enum_cls, order_label: str):
        try:
            return enum_cls.from_display(_clean_text(value))
        except ValueError:
            self._log_once(f"Unknown {enum_cls.__name__} {value!r} on order {order_label}, left unset")
            return None

    def parse_order_row(self, row: Mapping[str, Any], index: int = 0) -> Order:
        """Build one Order from a raw row.

        Fields are looked up by canonical key, then by order sheet header, then in
        a nested "customer" object. A missing id falls back to the row position
        and a missing order number to "ORD-001" style numbering.

        Raises:
            OrderParseError: If the row is not a mapping
        """
        if not isinstance(row, Mapping):
            raise OrderParseError(
                f"Order row {index} must be an object, got {type(row).__name__}", index=index
            )

        order_id = _clean_text(self._get(row, "id")) or str(index + 1)
        order_number = _clean_text(self._get(row, "orderNumber")) or f"ORD-{index + 1:03d}"

        raw_phone = self._get(row, "customerPhone")
        customer_phone = None if raw_phone is None else _clean_text(raw_phone)

        return Order(
            id=order_id,
            order_number=order_number,
            customer_name=_clean_text(self._get(row, "customerName")),
            customer_phone=customer_phone,
            items=self.parse_items(self._get(row, "items")),
            total=_parse_amount(self._get(row, "amount", "total")),
            status=self._parse_status(self._get(row, "status"), OrderStatus, order_number),
            payment_status=self._parse_status(self._get(row, "paymentStatus"), PaymentStatus, order_number),
            created_at=_clean_text(self._get(row, "createdAt")),
            delivery_method=_clean_text(self._get(row, "deliveryMethod")),
            delivery_address=_clean_text(self._get(row, "deliveryAddress")),
            due_date=_clean_text(self._get(row, "dueDate")),
            delivery_time=_clean_text(self._get(row, "deliveryTime")),
            payment_method=_clean_text(self._get(row, "paymentMethod")),
            notes=_clean_text(self._get(row, "note", "notes")),
        )

    def parse_items(self, value) -> List[OrderItem]:
        """Normalize order items into OrderItem models.

        Accepts a list of item dicts, a JSON array string, or the legacy
        "product xN, product xM" text. A legacy part without a quantity counts as 1.
        """
        if _is_missing(value):
            return []

        if isinstance(value, (list, tuple)):
            items = []
            for item in value:
                if isinstance(item, (Mapping, OrderItem)):
                    items.append(self._parse_item(item))
                elif not _is_missing(item):
                    items.extend(self.parse_items(str(item)))
            return items

        text = str(value).strip()
        if not text:
            return []

        if text.startswith("["):
            try:
                return self.parse_items(json.loads(text))
            except json.JSONDecodeError as e:
                self._log_once(f"Could not parse items JSON {text[:50]!r}: {e}")
                return []

        items = []
        for part in ITEM_SEPARATORS.split(text):
            part = part.strip()
            if not part:
                continue
            match = ITEM_PATTERN.match(part)
            if match:
                items.append(OrderItem(product=match.group(1).strip(), quantity=int(match.group(2))))
            else:
                items.append(OrderItem(product=part, quantity=1))
        return items

    def _parse_item(self, item) -> OrderItem:
        if isinstance(item, OrderItem):
            return item

        product = _clean_text(item.get("product") or item.get("product_name"))
        raw_quantity = item.get("quantity")
        quantity = int(_parse_amount(raw_quantity)) if _clean_text(raw_quantity) else 1
        price = _parse_amount(item.get("price"))
        subtotal = item.get("subtotal")
        subtotal = _parse_amount(subtotal) if not _is_missing(subtotal) else price * quantity
        return OrderItem(product=product, quantity=quantity, price=price, subtotal=subtotal)
