"""API routers for Pregnancy Medication Safety."""

from pregsafe.api.assessments import router as assessments_router
from pregsafe.api.audit import router as audit_router
from pregsafe.api.conditions import router as conditions_router
from pregsafe.api.medications import router as medications_router

__all__ = [
    "assessments_router",
    "audit_router",
    "conditions_router",
    "medications_router",
]
