from fastapi import APIRouter
from tresor.api.v1.endpoints import obligations, recurring, tontines

api_router = APIRouter()

api_router.include_router(obligations.router, prefix="/obligations", tags=["obligations"])
api_router.include_router(tontines.router, prefix="/tontines", tags=["tontines"])
api_router.include_router(recurring.router, prefix="/recurring", tags=["recurring"])
