# File: main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import database
from auth.router import router as users_router
from config import settings
from routers.cart import router as cart_router
from routers.favorites import router as favorites_router
from routers.orders import router as orders_router
from routers.payments import router as payments_router
from routers.products import router as products_router
from routers.status import router as status_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Raises when MONGODB_URI is missing, which aborts startup
    db = database.connect()
    try:
        database.ping(db)
        database.ensure_indexes(db)
        logger.info("Connected to MongoDB")
    except Exception as e:
        logger.error("Could not connect to MongoDB: %s", e)
    yield
    database.close()


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Catalog, cart, favorites, orders and payments for the Trendy Fashion storefront.",
    version="1.0.0",
    lifespan=lifespan,
)


# --- CORS Middleware ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
)


# --- Error Handlers ---
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ())[1:])
        message = f"{field}: {first.get('msg')}" if field else first.get("msg")
    else:
        message = "Invalid request"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": message})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": "Server error"})


# --- Include Routers ---
app.include_router(users_router)
app.include_router(products_router)
app.include_router(cart_router)
app.include_router(favorites_router)
app.include_router(orders_router)
app.include_router(payments_router)
app.include_router(status_router)


# --- Root Endpoint ---
@app.get("/")
def read_root():
    return {"status": "Trendy Fashion API is online."}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
