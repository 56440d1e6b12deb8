"""
FastAPI application entry point
Main application initialization
"""
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pathlib import Path
from app.config import AUTO_CREATE_TABLES, DEBUG, LOG_FILE, MODE, PORT, STORAGE_ROOT
from app.middleware.cors import setup_cors
from app.database import init_db, close_db
import logging

# Configure logging
log_handlers = [logging.StreamHandler()]
if LOG_FILE:
    log_handlers.append(logging.FileHandler(LOG_FILE))

logging.basicConfig(
    level=logging.DEBUG if DEBUG else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=log_handlers,
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Content Publisher API",
    description="Publishes content directories to the content store, the public bucket and the local file tree",
    version="0.1.0",
    debug=DEBUG,
)

# Setup CORS
setup_cors(app)


@app.on_event("startup")
async def startup_event():
    """Prepare storage and, if enabled, the database tables"""
    logger.info(f"Starting application in {MODE} mode")
    try:
        Path(STORAGE_ROOT).mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error(f"Cannot create storage root {STORAGE_ROOT}: {e}")
    if AUTO_CREATE_TABLES:
        await init_db()
    logger.info("Application started successfully")


@app.on_event("shutdown")
async def shutdown_event():
    """Close database connections on shutdown"""
    logger.info("Shutting down application")
    await close_db()
    logger.info("Application shut down successfully")


@app.get("/")
async def root():
    """Root endpoint - health check"""
    return JSONResponse({
        "message": "Content Publisher API",
        "version": "0.1.0",
        "mode": MODE,
        "status": "running"
    })


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return JSONResponse({
        "status": "healthy",
        "mode": MODE
    })


from app.apps.publish.router import router as publish_router
app.include_router(publish_router, tags=["publish"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="127.0.0.1",
        port=PORT,
        reload=DEBUG,
        log_level="debug" if DEBUG else "info"
    )
