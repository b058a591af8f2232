from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import os

from src.config import settings
from src.database import init_db
from src.chat import router as chat_router
from src.bookings import router as bookings_router
from src.admin import router as admin_router
from src.reservations.sweeper import sweeper
from src.logger_config import logger
from src.utils import now

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    init_db()
    os.makedirs(settings.QR_CODE_DIR, exist_ok=True)
    sweeper.start()
    logger.info(f"{settings.PROJECT_NAME} started ({settings.ENVIRONMENT}, booking flow: {settings.BOOKING_FLOW})")
    yield
    # Shutdown
    sweeper.stop()
    logger.info(f"{settings.PROJECT_NAME} shutting down")

# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    description="WhatsApp ticket booking chatbot",
    docs_url="/docs",
    redoc_url="/redoc",
    debug=settings.DEBUG,
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(chat_router.router, tags=["WhatsApp Webhook"])
app.include_router(bookings_router, tags=["Tickets"])
app.include_router(admin_router.router, tags=["Admin"])

@app.get("/")
def root():
    """Root endpoint"""
    return {
        "service": settings.PROJECT_NAME,
        "version": "1.0.0",
        "status": "running",
        "endpoints": {
            "webhook": "/webhook",
            "admin": "/admin",
            "health": "/health"
        }
    }

@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": now().isoformat(),
        "environment": settings.ENVIRONMENT
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
