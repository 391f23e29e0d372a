"""API routes."""

from hr_workflow.api.routes.health import router as health_router
from hr_workflow.api.routes.leaves import router as leaves_router
from hr_workflow.api.routes.onboarding import router as onboarding_router
from hr_workflow.api.routes.tickets import router as tickets_router

__all__ = ["health_router", "leaves_router", "onboarding_router", "tickets_router"]
