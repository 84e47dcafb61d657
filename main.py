from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
import logging

from app.config import settings
from app.database.database import test_connection
from app.database.migration import run_migration
from app.api import api_router

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Expense Approval API",
    description="Multi-step expense approval workflow for companies, employees and approvers",
    version="1.0.0",
)

origins = settings.CORS_ORIGINS
# Allow all origins on hosted deployments
if settings.IS_HOSTED:
    origins = ["*"]
    logger.info("Production environment detected, allowing all origins")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.on_event("startup")
async def startup_event():
    """Run startup tasks"""
    logger.info("Starting up Expense Approval API...")

    logger.info("Testing database connection...")
    if test_connection():
        logger.info("Running database migration...")
        run_migration()
    else:
        logger.error("Database connection failed!")

    logger.info("Startup completed!")

app.include_router(api_router)

@app.get("/")
def read_root():
    return {
        "message": "Welcome to the Expense Approval API",
        "version": "1.0.0",
        "status": "running"
    }

@app.get("/health")
def health_check():
    """Health check endpoint for deployment platforms"""
    db_status = test_connection()
    if not db_status:
        raise HTTPException(status_code=503, detail="Database unavailable")
    return {
        "status": "healthy",
        "database": "connected",
        "version": "1.0.0"
    }
