from fastapi import APIRouter, Depends

from deepform.api.deps import bind_log_context
from deepform.api.routes import campaigns, health, interview, pipeline, sessions, shared, stages

api_router = APIRouter(dependencies=[Depends(bind_log_context)])

api_router.include_router(health.router, tags=["health"])
api_router.include_router(sessions.router, tags=["sessions"])
api_router.include_router(interview.router, tags=["interview"])
api_router.include_router(stages.router, tags=["stages"])
api_router.include_router(pipeline.router, tags=["pipeline"])
api_router.include_router(shared.router, tags=["shared"])
api_router.include_router(campaigns.router, tags=["campaigns"])
