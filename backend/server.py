"""
IT Operations Management System - Procurement Approval Backend
PostgreSQL Backend
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv
from pathlib import Path
import os
import logging

# Load environment variables
ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

# Create the main app
app = FastAPI(
    title="IT Operations Management System",
    description="IT procurement approvals, assets and tickets",
    version="1.0.0"
)

# Health check endpoint at root level (for Kubernetes)
@app.get("/health")
async def root_health_check():
    """Health check endpoint for Kubernetes liveness/readiness probes"""
    return {"status": "healthy", "database": "PostgreSQL"}

# ==================== Routes ====================
from routes.auth_routes import auth_router
from routes.procurement_routes import procurement_router
from routes.inventory_routes import inventory_router

app.include_router(auth_router)
app.include_router(procurement_router)
app.include_router(inventory_router)

# ==================== CORS Configuration ====================
app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=os.environ.get('CORS_ORIGINS', '*').split(','),
    allow_methods=["*"],
    allow_headers=["*"],
)

# ==================== Logging Configuration ====================
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# ==================== Startup & Shutdown Events ====================
@app.on_event("startup")
async def startup_db_client():
    """Initialize PostgreSQL database on startup"""
    logger.info("🚀 Starting IT Operations Management System...")

    from database import init_postgres_db
    from database.connection import get_session_maker
    from routes.auth_routes import seed_default_users

    await init_postgres_db()
    async with get_session_maker()() as session:
        await seed_default_users(session)

    logger.info("✅ PostgreSQL database initialized successfully")

@app.on_event("shutdown")
async def shutdown_db_client():
    """Close database connections on shutdown"""
    logger.info("🛑 Shutting down...")

    from database import close_postgres_db
    await close_postgres_db()

    logger.info("✅ Database connections closed")
