"""
Hospital Portal - patient registry and clinical report API.
Patients read their own record; clinicians manage cases, visits and reports.
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import admin, auth, insights, patients, reports, visits
from .core.audit_middleware import AuditMiddleware
from .core.config import settings
from .models import audit, storage  # noqa: F401  registers tables
from .models.base import Base, engine
from .seed_demo import seed_demo_data

logging.basicConfig(level=logging.INFO)

# Create all database tables
# NOTE: In production, use Alembic migrations instead of create_all()
Base.metadata.create_all(bind=engine)

if settings.SEED_DEMO_DATA:
    seed_demo_data()

app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description=(
        "Hospital patient portal: keyword condition screening, seven-section "
        "clinical reports with an AI-first, template-fallback renderer, and a "
        "patient registry with visit and discharge tracking."
    ),
    version=settings.VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(AuditMiddleware)

app.include_router(auth.router, prefix="/api/v1")
app.include_router(patients.router, prefix="/api/v1")
app.include_router(visits.router, prefix="/api/v1")
app.include_router(reports.router, prefix="/api/v1")
app.include_router(insights.router, prefix="/api/v1")
app.include_router(admin.router, prefix="/api/v1")


@app.get("/health")
def health_check():
    return {"status": "healthy", "service": settings.APP_NAME, "version": settings.VERSION}
