"""
REST API main application.
Entry point for the FastAPI REST server.
"""

from fastapi import FastAPI

from shared.config.settings import settings
from shared.infrastructure.correlation import CorrelationIdMiddleware
from spa_api.core.cors import configure_cors
from spa_api.core.lifespan import lifespan
from spa_api.routers import health_router, orders_router


app = FastAPI(
    title="Spa Order API",
    description="Orders, checkout and commission settlement for the spa front desk",
    version="0.1.0",
    lifespan=lifespan,
)

configure_cors(app)
app.add_middleware(CorrelationIdMiddleware)

app.include_router(health_router)
app.include_router(orders_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "spa_api.main:app",
        host="0.0.0.0",
        port=settings.rest_api_port,
        reload=True,
    )
