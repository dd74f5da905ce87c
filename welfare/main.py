from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from welfare.api import accounts, admin, auth, cases, me, members, operations, reports, transactions
from welfare.core.config import settings
import logging

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

# Get logger for this module
logger = logging.getLogger(__name__)
logger.info("Starting Welfare Portal API")

VERSION = "1.0.0"

app = FastAPI(
    title="Welfare Portal API",
    description="Members, cases, contributions and wallet ledger for a welfare society",
    version=VERSION,
    debug=settings.DEBUG,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router)
app.include_router(members.router)
app.include_router(members.residence_router)
app.include_router(cases.router)
app.include_router(transactions.router)
app.include_router(accounts.router)
app.include_router(operations.router)
app.include_router(reports.router)
app.include_router(admin.router)
app.include_router(me.router)


@app.get("/")
def root():
    """Root endpoint."""
    return {"message": "Welfare Portal API", "version": VERSION}


@app.get("/api/health")
def health_check():
    """Health check endpoint: checks API and database connectivity."""
    from welfare.db.base import SessionLocal
    from sqlalchemy import text
    from sqlalchemy.exc import SQLAlchemyError
    from datetime import datetime, timezone

    db_status = "unreachable"
    db_error = None
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        db_status = "connected"
    except SQLAlchemyError as e:
        db_error = str(e)
    finally:
        db.close()

    status = "healthy" if db_status == "connected" else "degraded"

    return {
        "status": status,
        "version": VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "api": "ok",
            "database": db_status,
        },
        **({"database_error": db_error} if db_error else {})
    }
