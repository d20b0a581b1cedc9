"""
FastAPI endpoints for the order dashboard.
Exposes duplicate detection and order statistics to other clients.
"""

import logging
import os
from typing import Any, Dict, List

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel
import uvicorn

from utils.data_parser import DataParser, OrderParseError
from utils.duplicate_detector import DuplicateDetector
from utils.order_stats import calculate_order_stats

load_dotenv()

# Set up logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Order Dashboard API",
    description="Duplicate order detection and order statistics",
    version="1.0.0"
)

detector = DuplicateDetector()


class OrdersRequest(BaseModel):
    """Raw order rows as returned by the order sheet or database"""

    orders: List[Any]


def _parse_orders(rows: List[Any]):
    try:
        return DataParser().to_orders(rows)
    except OrderParseError as e:
        logger.warning(f"Rejected order payload: {str(e)}")
        raise HTTPException(status_code=422, detail=str(e))


@app.get("/")
async def root():
    """Health check endpoint"""
    return {"message": "Order Dashboard API is running", "status": "healthy"}


@app.get("/api/health")
async def health_check():
    """Detailed health check with the active phone normalization policy"""
    return {
        "status": "healthy",
        "phone_policy": detector.phone_policy.model_dump(),
        "endpoints": {
            "duplicates": "/api/orders/duplicates",
            "stats": "/api/orders/stats",
            "health": "/api/health"
        }
    }


@app.post("/api/orders/duplicates")
def find_duplicate_orders(request: OrdersRequest) -> Dict[str, Any]:
    """
    Group orders that share a customer phone number.

    Groups are returned in the order their phone first appears in the request.
    """
    orders = _parse_orders(request.orders)
    try:
        groups = detector.detect_duplicate_orders(orders)
    except Exception as e:
        logger.error(f"❌ Unexpected error in duplicate check: {str(e)}")
        raise HTTPException(
            status_code=500,
            detail=f"Internal server error: {str(e)}"
        )

    return {
        "success": True,
        "data": [group.to_display_dict() for group in groups],
        **detector.summarize(groups),
    }


@app.post("/api/orders/stats")
def order_stats(request: OrdersRequest) -> Dict[str, Any]:
    """Calculate order counts, unpaid orders and product totals"""
    orders = _parse_orders(request.orders)
    try:
        stats = calculate_order_stats(orders)
    except Exception as e:
        logger.error(f"❌ Unexpected error in stats calculation: {str(e)}")
        raise HTTPException(
            status_code=500,
            detail=f"Internal server error: {str(e)}"
        )

    return {"success": True, "data": stats.model_dump(by_alias=True)}


if __name__ == "__main__":
    # This allows running the API standalone for testing
    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get('PORT', 8001)))
