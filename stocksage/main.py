import logging
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

from stocksage.core.config import settings
from stocksage.core.database import init_db
from stocksage.core.exceptions import StockSageError
from stocksage.core.logging import configure_logging
from stocksage.routers import auth, product, bill, analytics

configure_logging()
logger = logging.getLogger(__name__)


# ---------------------------------------------------------
# 1. LIFESPAN MANAGER
# ---------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    # --- STARTUP ---
    logger.info("Initialization started")
    try:
        client = await init_db()
    except PyMongoError:
        logger.critical("Could not connect to database '%s'", settings.DATABASE_NAME, exc_info=True)
        raise
    logger.info("Connected to database '%s'", settings.DATABASE_NAME)

    yield

    # --- SHUTDOWN ---
    client.close()
    logger.info("System shutting down")


# ---------------------------------------------------------
# 2. APP INITIALIZATION
# ---------------------------------------------------------
app = FastAPI(
    title=settings.APP_NAME,
    lifespan=lifespan,
    description="Inventory and billing API for small shops"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------
# 3. ERROR HANDLERS
# ---------------------------------------------------------
@app.exception_handler(StockSageError)
async def stocksage_error_handler(request: Request, exc: StockSageError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(PyMongoError)
async def storage_error_handler(request: Request, exc: PyMongoError):
    logger.error("Unhandled storage error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Server error"})


# ---------------------------------------------------------
# 4. ROUTERS
# ---------------------------------------------------------
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(product.router, prefix="/api/products", tags=["Product Management"])
app.include_router(bill.router, prefix="/api/bills", tags=["Billing"])
app.include_router(analytics.router, prefix="/api/analytics", tags=["Analytics"])


@app.get("/api/health", tags=["System"])
async def health_check():
    """Liveness check."""
    return {
        "message": f"{settings.APP_NAME} is running!",
        "timestamp": datetime.utcnow().isoformat(),
    }
