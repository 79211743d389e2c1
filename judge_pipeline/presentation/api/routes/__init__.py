from judge_pipeline.presentation.api.routes.admin import router as admin_router
from judge_pipeline.presentation.api.routes.health import router as health_router
from judge_pipeline.presentation.api.routes.submissions import router as submissions_router
from judge_pipeline.presentation.api.routes.ws import router as ws_router

__all__ = [
    "admin_router",
    "health_router",
    "submissions_router",
    "ws_router",
]
