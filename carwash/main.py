import asyncio
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from carwash.api import admin, bookings, shops
from carwash.api.deps import get_booking_service
from carwash.core.config import settings
from carwash.core.errors import (
    AlreadyPaid,
    BookingError,
    BookingNotFound,
    FeedbackNotAllowed,
    InvalidFormat,
    InvalidTransition,
    ServiceNotFound,
    ShopNotFound,
    SlotUnavailable,
    TooLateToCancel,
    Unauthorized,
)
from carwash.core.logger import setup_logging, logger
from carwash.services.sweeper import auto_confirm_loop

setup_logging()

ERROR_STATUS = {
    ShopNotFound: 404,
    ServiceNotFound: 404,
    BookingNotFound: 404,
    InvalidFormat: 400,
    Unauthorized: 403,
    SlotUnavailable: 409,
    AlreadyPaid: 409,
    TooLateToCancel: 409,
    InvalidTransition: 409,
    FeedbackNotAllowed: 409,
}

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("🚀 Starting Car Wash Booking Backend")
    stop_event = asyncio.Event()
    sweeper = None
    if settings.AUTO_CONFIRM_INTERVAL_SECONDS > 0:
        sweeper = asyncio.create_task(
            auto_confirm_loop(get_booking_service(), stop_event, settings.AUTO_CONFIRM_INTERVAL_SECONDS)
        )
    yield
    # Shutdown
    stop_event.set()
    if sweeper is not None:
        await sweeper
    logger.info("🛑 Shutting down backend")

app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan
)

@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    status_code = ERROR_STATUS.get(type(exc), 400)
    logger.warning(f"⚠️ {request.method} {request.url.path} -> {status_code} {exc.code}: {exc.message}")
    return JSONResponse(status_code=status_code, content={"code": exc.code, "message": exc.message})

# Global Exception Handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"🔥 UNHANDLED ERROR: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"message": "Internal Server Error", "detail": "An unexpected error occurred. Please contact support."}
    )

# Include routers
app.include_router(shops.router, tags=["Shops"])
app.include_router(bookings.router, tags=["Bookings"])
app.include_router(admin.router, tags=["Admin"])

@app.get("/")
async def health_check():
    return {'status': 'active', 'time': datetime.now().isoformat()}

@app.get("/health")
async def health_check_std():
    return {"status": "ok", "environment": settings.ENVIRONMENT, "timestamp": datetime.now().isoformat()}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("carwash.main:app", host="0.0.0.0", port=settings.PORT, reload=True)
