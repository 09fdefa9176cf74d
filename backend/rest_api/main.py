"""
REST API main application.
Entry point for the FastAPI server: HTTP API and the diner live view socket.
"""

from fastapi import FastAPI
from slowapi.errors import RateLimitExceeded

from shared.config.settings import settings
from shared.infrastructure.correlation import CorrelationIdMiddleware
from shared.security.rate_limit import limiter, rate_limit_exceeded_handler
from rest_api.core.cors import configure_cors
from rest_api.core.lifespan import lifespan
from rest_api.core.middlewares import register_exception_handlers, register_middlewares
from rest_api.routers.admin import router as admin_router
from rest_api.routers.auth import router as auth_router
from rest_api.routers.diner import access_router, cart_router, live_router, orders_router
from rest_api.routers.kitchen import router as kitchen_router
from rest_api.routers.public import health_router, tables_router
from rest_api.routers.waiter import router as waiter_router


app = FastAPI(
    title="Tavola REST API",
    description="Table ordering for restaurants: QR menu, shared cart, kitchen and billing",
    version="0.1.0",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
register_exception_handlers(app)

register_middlewares(app)
app.add_middleware(CorrelationIdMiddleware)
configure_cors(app)


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(health_router)
app.include_router(auth_router)
app.include_router(tables_router)
app.include_router(access_router)
app.include_router(cart_router)
app.include_router(orders_router)
app.include_router(live_router)
app.include_router(waiter_router)
app.include_router(kitchen_router)
app.include_router(admin_router)


# =============================================================================
# Development entry point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "rest_api.main:app",
        host="0.0.0.0",
        port=settings.rest_api_port,
        reload=True,
    )
