from fastapi import APIRouter

from ..routers import auth as auth_router
from ..routers import organizations as organizations_router
from ..routers import projects as projects_router
from ..routers import tasks as tasks_router


api_router = APIRouter(prefix="/api")

# Endpoints live at /api/auth, /api/organizations, /api/projects and /api/tasks
api_router.include_router(auth_router.router)
api_router.include_router(organizations_router.router)
api_router.include_router(projects_router.router)
api_router.include_router(tasks_router.router)


@api_router.get("/", tags=["meta"])  # lightweight meta endpoint
def api_info():
    return {
        "name": "TaskForge API",
        "version": "0.1.0",
        "auth": {
            "register": "/api/auth/register",
            "login": "/api/auth/login",
            "me": "/api/auth/me",
        },
        "organizations": "/api/organizations",
        "projects": "/api/projects/{project_id}",
        "tasks": "/api/tasks/{task_id}",
    }
