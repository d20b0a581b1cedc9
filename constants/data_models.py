# constants/data_models.py

# Canonical order fields produced by the ingestion boundary
ORDER_COLUMNS = [
    "id",
    "orderNumber",
    "createdAt",
    "customerName",
    "customerPhone",
    "items",
    "amount",
    "status",
    "paymentStatus",
    "paymentMethod",
    "deliveryMethod",
    "deliveryAddress",
    "dueDate",
    "deliveryTime",
    "note",
]

# Order sheet headers -> canonical fields
# do not change: these match the column titles of the order sheet export
SHEET_COLUMN_ALIASES = {
    "Id": "id",
    "訂單編號": "orderNumber",
    "訂單時間": "createdAt",
    "姓名": "customerName",
    "電話": "customerPhone",
    "訂單項目": "items",
    "總金額": "amount",
    "訂單狀態": "status",
    "款項": "paymentStatus",
    "付款方式": "paymentMethod",
    "宅配方式": "deliveryMethod",
    "門市或地址": "deliveryAddress",
    "希望到貨日": "dueDate",
    "宅配時段": "deliveryTime",
    "備註": "note",
}

# Columns exported for the duplicate report
DUPLICATE_REPORT_COLUMNS = [
    "Group",
    "Phone",
    "Normalized Phone",
    "Count",
    "Order ID",
    "Order Number",
    "Customer Name",
    "Customer Phone",
]
