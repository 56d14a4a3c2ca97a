from ordering.api.routes import checkout_router, coupon_router, order_router, stock_router

__all__ = ["checkout_router", "order_router", "coupon_router", "stock_router"]
