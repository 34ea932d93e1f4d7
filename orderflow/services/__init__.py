# Services module
from orderflow.services.kv_store import KeyValueStore, get_store
from orderflow.services.order_store import OrderStore
from orderflow.services.order_service import OrderService
from orderflow.services.otp_service import OTPService
from orderflow.services.eta_service import ETACalculator
from orderflow.services.analytics_service import AnalyticsService
from orderflow.services.product_service import ProductService
from orderflow.services.feedback_service import FeedbackService
from orderflow.services.user_service import UserService

__all__ = [
    "KeyValueStore",
    "get_store",
    "OrderStore",
    "OrderService",
    "OTPService",
    "ETACalculator",
    "AnalyticsService",
    "ProductService",
    "FeedbackService",
    "UserService",
]
