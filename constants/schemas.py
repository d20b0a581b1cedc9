from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field


# --- Status enumerations with their display strings ---


class OrderStatus(str, Enum):
    """Order lifecycle states. Display strings live in ORDER_STATUS_DISPLAY."""

    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    CANCELED = "canceled"

    @property
    def display(self) -> str:
        return ORDER_STATUS_DISPLAY[self]

    @classmethod
    def from_display(cls, text: Optional[str]) -> Optional["OrderStatus"]:
        return _from_display(cls, ORDER_STATUS_DISPLAY, text)


class PaymentStatus(str, Enum):
    """Payment states. Display strings live in PAYMENT_STATUS_DISPLAY."""

    UNPAID = "unpaid"
    PAID = "paid"
    AWAITING_TRANSFER = "awaiting_transfer"
    PARTIAL = "partial"
    SPECIAL = "special"

    @property
    def display(self) -> str:
        return PAYMENT_STATUS_DISPLAY[self]

    @classmethod
    def from_display(cls, text: Optional[str]) -> Optional["PaymentStatus"]:
        return _from_display(cls, PAYMENT_STATUS_DISPLAY, text)


# do not change: these are the literal values stored in the order sheet
ORDER_STATUS_DISPLAY = {
    OrderStatus.PENDING: "訂單確認中",
    OrderStatus.PROCESSING: "已抄單",
    OrderStatus.SHIPPED: "已出貨",
    OrderStatus.CANCELED: "取消訂單",
}

PAYMENT_STATUS_DISPLAY = {
    PaymentStatus.UNPAID: "未收費",
    PaymentStatus.PAID: "已收費",
    PaymentStatus.AWAITING_TRANSFER: "待轉帳",
    PaymentStatus.PARTIAL: "未全款",
    PaymentStatus.SPECIAL: "特殊",
}


def _from_display(enum_cls, table: Dict[Any, str], text: Optional[str]):
    """
    Translate a display string (or an enum value) into an enum member.

    Returns None for empty input and raises ValueError for anything that is
    not a known display string or value.
    """
    if text is None:
        return None
    text = str(text).strip()
    if not text:
        return None
    for member, label in table.items():
        if text == label:
            return member
    return enum_cls(text)


# --- Order models ---


class OrderItem(BaseModel):
    """A single product line on an order"""

    product: str
    quantity: int = 1
    price: float = 0.0
    subtotal: float = 0.0

    model_config = ConfigDict(frozen=True)


class Order(BaseModel):
    """Represents an order as consumed by duplicate detection and statistics"""

    id: str
    order_number: str = Field(alias="orderNumber", default="")
    customer_name: str = Field(alias="customerName", default="")
    customer_phone: Optional[str] = Field(alias="customerPhone", default=None)
    items: List[OrderItem] = Field(default_factory=list)
    total: float = 0.0
    status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = Field(alias="paymentStatus", default=None)
    created_at: str = Field(alias="createdAt", default="")
    delivery_method: str = Field(alias="deliveryMethod", default="")
    delivery_address: str = Field(alias="deliveryAddress", default="")
    due_date: str = Field(alias="dueDate", default="")
    delivery_time: str = Field(alias="deliveryTime", default="")
    payment_method: str = Field(alias="paymentMethod", default="")
    notes: str = ""

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class DuplicateGroup(BaseModel):
    """
    Orders sharing one normalized phone number.

    `phone` is the raw phone of the first member and is only used for display;
    `normalized_phone` is the comparison key. `count` always equals the number
    of members.
    """

    normalized_phone: str = Field(alias="normalizedPhone")
    phone: Optional[str] = None
    orders: List[Order]

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @computed_field
    @property
    def count(self) -> int:
        return len(self.orders)

    def to_display_dict(self) -> Dict[str, Any]:
        """Serialize the group with members reduced to their identifying fields."""
        return {
            "phone": self.phone,
            "normalizedPhone": self.normalized_phone,
            "count": self.count,
            "orders": [
                {
                    "id": order.id,
                    "orderNumber": order.order_number,
                    "customerName": order.customer_name,
                    "customerPhone": order.customer_phone,
                }
                for order in self.orders
            ],
        }


class OrderStats(BaseModel):
    """Aggregate counts for an order list"""

    total: int = 0
    pending: int = 0
    processing: int = 0
    completed: int = 0
    canceled: int = 0
    unpaid: int = 0
    total_amount: float = Field(alias="totalAmount", default=0.0)
    product_quantities: Dict[str, int] = Field(alias="productQuantities", default_factory=dict)

    model_config = ConfigDict(populate_by_name=True)
