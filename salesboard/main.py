from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
import logging
from pathlib import Path

from salesboard.database import engine, Base, SessionLocal
from salesboard import models  # Import all models to register them with Base
from salesboard.exceptions import SalesboardException
from salesboard.routes import (
    achievements, activity, admin, goals, leaderboard, orders, points, reports, teams
)
from salesboard.seed import seed_all
from salesboard.services.scheduler_service import start_scheduler, stop_scheduler
from salesboard.constants import (
    CORS_ALLOWED_ORIGINS,
    DEFAULT_LOG_DIRECTORY_DEV,
    LOG_DIR,
    LOG_FILE,
    SCHEDULER_ENABLED
)

# Create log directory if it doesn't exist (for development)
try:
    Path(LOG_DIR).mkdir(parents=True, exist_ok=True)
    log_path = Path(LOG_DIR) / LOG_FILE
except PermissionError:
    # Fallback to local directory if no permissions for /var/log
    Path(DEFAULT_LOG_DIRECTORY_DEV).mkdir(parents=True, exist_ok=True)
    log_path = Path(DEFAULT_LOG_DIRECTORY_DEV) / LOG_FILE

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(log_path),
        logging.StreamHandler()  # Also log to console
    ]
)

logger = logging.getLogger("salesboard")

# Create database tables
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Salesboard API",
    description="Sales tracking with points, streaks, achievements, leaderboards and team battles",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for module in (orders, points, leaderboard, achievements, goals, teams, reports, activity, admin):
    app.include_router(module.router)
app.include_router(teams.battles_router)


@app.exception_handler(SalesboardException)
async def salesboard_exception_handler(request: Request, exc: SalesboardException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "data": None, "error": str(exc)}
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"success": False, "data": None, "error": "Database error"}
    )


@app.on_event("startup")
async def startup_event():
    logger.info(f"Salesboard API started. Logging to: {log_path}")

    db = SessionLocal()
    try:
        seed_all(db)
    except Exception as e:
        logger.error(f"Seeding reference data failed: {e}")
        # Don't crash the app - continue with existing data
    finally:
        db.close()

    if SCHEDULER_ENABLED:
        start_scheduler()


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down Salesboard API")
    stop_scheduler()


# Health check (no auth required)
@app.get("/")
async def root():
    return {"message": "Salesboard API", "status": "active"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("salesboard.main:app", host="0.0.0.0", port=8000, reload=False)
