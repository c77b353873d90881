import logging

from fastapi import FastAPI, Request, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from core import config
from core.database import engine, get_db, Base

# Import all models to register them
from models.user import User, PinDevice
from models.trip_segment import TripSegment, TripSegmentPhoto

# Import routers
from api import auth, trip_segments, uploads, plates, users, vision

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
log = logging.getLogger(__name__)

# Create database tables
Base.metadata.create_all(bind=engine)

# Initialize FastAPI app
app = FastAPI(
    title="Container Inspection API",
    description="Trip segment inspection backend for the mobile depot app",
    version="1.0.0"
)

# Mount photo storage
config.UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=str(config.UPLOAD_DIR)), name="uploads")

# Register routers
app.include_router(auth.router, prefix="/api")
app.include_router(trip_segments.router, prefix="/api")
app.include_router(uploads.router, prefix="/api")
app.include_router(plates.router, prefix="/api")
app.include_router(vision.router, prefix="/api")
app.include_router(users.router, prefix="/api")


# ==================== ERROR ENVELOPE ====================
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """The mobile app reads ``success`` and ``error`` from every failure."""
    body = {"success": False}
    if isinstance(exc.detail, dict):
        body.update(exc.detail)
        body.setdefault("error", "Request failed")
    else:
        body["error"] = str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content=body, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ())[1:])
    message = first.get("msg", "Invalid request")
    log.info("Rejected %s %s: %s", request.method, request.url.path, message)
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "error": f"{field}: {message}" if field else message,
            "details": [{"loc": list(err.get("loc", ())), "msg": err.get("msg")} for err in errors],
        },
    )


# ==================== HEALTH CHECK ====================
@app.get("/health")
def health_check():
    """Health check endpoint for Docker and Kubernetes."""
    return {
        "status": "healthy",
        "service": "Container Inspection API",
        "version": "1.0.0"
    }


@app.get("/api/health")
def api_health_check():
    return {"success": True, "message": "Server is running", "ecdName": config.ECD_NAME}


@app.get("/api/status")
def api_status(db: Session = Depends(get_db)):
    """Reports whether the database answers."""
    try:
        db.execute(text("SELECT 1"))
        database = "connected"
    except Exception as exc:
        log.error("Database ping failed: %s", exc, exc_info=True)
        database = "disconnected"

    return {
        "success": database == "connected",
        "database": database,
        "ecdName": config.ECD_NAME,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=False)
