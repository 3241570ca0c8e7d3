from fastapi import APIRouter
from leavedesk.routers import auth, employee, hr, manager, admin, dashboard

# Centralized API router hub
# Routers are aggregated here, and main.py only imports this single hub.
api_router = APIRouter()

api_router.include_router(auth.router, tags=["Authentication"])
api_router.include_router(employee.router, tags=["Employee Self-Service"])
api_router.include_router(hr.router, tags=["HR"])
api_router.include_router(manager.router, tags=["Manager"])
api_router.include_router(admin.router, tags=["Administration"])
api_router.include_router(dashboard.router, tags=["Dashboards"])
