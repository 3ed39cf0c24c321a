from fastapi import APIRouter

from arena.api.routes import account, analysis, health, ideas, personas, stages

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(account.router, tags=["account"])
api_router.include_router(personas.router, tags=["personas"])
api_router.include_router(ideas.router, prefix="/ideas", tags=["ideas"])
api_router.include_router(stages.router, prefix="/stages", tags=["stages"])
api_router.include_router(analysis.router, prefix="/analysis", tags=["analysis"])
