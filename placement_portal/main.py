"""
Placement Portal - Main Application

FastAPI backend with:
- MongoDB for every entity (students, faculty, companies, applications)
- JWT authentication (verify_jwt on every protected route)
- Admin workflows: registration, allocation, bulk resets, temp-password export

Run: uvicorn placement_portal.main:app --reload
"""

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from placement_portal import __version__
from placement_portal.api.routes import api_router
from placement_portal.core.config import get_settings
from placement_portal.core.logging_config import setup_logging
from placement_portal.db.mongodb import init_mongo_indexes, test_mongo_connection
from placement_portal.services.admin_service import ensure_default_admin

settings = get_settings()
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Placement Portal",
    description="""
    Placement management backend.

    ## Features
    - **Authentication**: JWT-based auth for admins, students and faculty
    - **Admin**: Register students/faculty, allocate companies, bulk resets
    - **Students**: Preferred domains, company choices, resume upload
    - **Companies**: Seat-limited recruiting companies
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS middleware (allow all for development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix="/api")


# Error envelope: clients read "message", FastAPI clients still get "detail"
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": message, "detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "message": "Request validation failed",
            "detail": jsonable_encoder(exc.errors()),
        },
    )


# Startup event
@app.on_event("startup")
async def startup_event():
    """Configure logging, create MongoDB indexes and seed the default admin."""
    setup_logging("api", settings.log_level)
    try:
        init_mongo_indexes()
        ensure_default_admin()
        logger.info("MongoDB initialized")
    except Exception as e:
        logger.warning("MongoDB initialization failed: %s", e)


@app.get("/", tags=["Health"])
async def root():
    return {"status": "healthy", "app": "Placement Portal", "version": __version__}


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "mongodb": "connected" if test_mongo_connection() else "disconnected"
    }
