"""
School Administration API: Main Application
FastAPI application for users, courses, classrooms, tasks and submissions
behind a role-gated bearer token API.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from auth.security import TokenService
from config import Settings, load_settings
from database.database import Base, create_session_factory
from routers import (
    admin, assignments, classrooms, courses,
    lecturers, students, submissions, tasks, users,
)
from routers import auth as auth_routes
from services.accounts import ensure_admin
from services.errors import InternalError, ServiceError

log = logging.getLogger(__name__)


def _seed_defaults(app: FastAPI):
    """Create the bootstrap admin if none exists."""
    db = app.state.session_factory()
    try:
        ensure_admin(db, app.state.settings)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: create tables + seed defaults."""
    Base.metadata.create_all(bind=app.state.engine)
    _seed_defaults(app)
    yield
    app.state.engine.dispose()


# ─── Error translation ────────────────────────────────────────────────────────

async def service_error_handler(request: Request, exc: ServiceError):
    content = {"message": exc.message}
    if exc.context:
        content["errors"] = jsonable_encoder(exc.context)
    return JSONResponse(status_code=exc.status_code, content=content)


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(status_code=exc.status_code, content={"message": message},
                        headers=getattr(exc, "headers", None))


async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"message": "Validation failed", "errors": jsonable_encoder(exc.errors())},
    )


async def store_error_handler(request: Request, exc: SQLAlchemyError):
    log.exception("Store failure on %s %s", request.method, request.url.path)
    return await service_error_handler(request, InternalError())


async def unhandled_error_handler(request: Request, exc: Exception):
    log.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


# ─── App factory ──────────────────────────────────────────────────────────────

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s  %(levelname)s  %(name)s  %(message)s",
    )

    app = FastAPI(
        title="School Administration API",
        description="Users, courses, classrooms, tasks and submissions with role-based access",
        version="1.0.0",
        lifespan=lifespan,
    )

    engine, session_factory = create_session_factory(settings.database_url)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.token_service = TokenService(
        settings.jwt_secret_key, settings.jwt_algorithm, settings.jwt_expires_in
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(SQLAlchemyError, store_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # ─── Routers ──────────────────────────────────────────────────────────────
    app.include_router(auth_routes.router)   # /auth/*
    app.include_router(users.router)         # /users/*
    app.include_router(students.router)      # /students/*
    app.include_router(lecturers.router)     # /lecturers/*
    app.include_router(courses.router)       # /courses/*
    app.include_router(classrooms.router)    # /classrooms/*
    app.include_router(admin.router)         # /admin/*
    app.include_router(tasks.router)         # /tasks/*
    app.include_router(assignments.router)   # /assignments/*
    app.include_router(submissions.router)   # /submissions/*

    @app.get("/")
    def root():
        return {
            "name": "School Administration API",
            "version": "1.0.0",
            "endpoints": {
                "docs": "/docs",
                "auth": "/auth",
                "students": "/students",
                "lecturers": "/lecturers",
                "courses": "/courses",
                "classrooms": "/classrooms",
                "tasks": "/tasks",
                "submissions": "/submissions",
            },
        }

    @app.get("/health")
    def health_check():
        return {"status": "healthy", "service": "school-admin-api"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
