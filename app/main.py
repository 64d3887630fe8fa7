# app/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.config import LOG_LEVEL
from app.db import create_db_and_tables
from app.errors import BookingError
from app.routers import (
    analytics_routes,
    appointments_routes,
    auth_routes,
    availability_routes,
    professionals_routes,
    services_routes,
    users_routes,
)

# Configure logging
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("passlib").setLevel(logging.ERROR)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    create_db_and_tables()
    yield
    logger.info("Application shutting down")


app = FastAPI(title="Appointment Booking API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.detail}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {type(exc).__name__}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.get("/health")
def health_check():
    return {"status": "ok"}


app.include_router(auth_routes.router)
app.include_router(users_routes.router)
app.include_router(services_routes.router)
app.include_router(availability_routes.router)
app.include_router(appointments_routes.router)
app.include_router(professionals_routes.router)
app.include_router(analytics_routes.router)
