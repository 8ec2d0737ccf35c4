from fastapi import APIRouter
from arap.api.v1.endpoints import accounts, sync

api_router = APIRouter()

api_router.include_router(accounts.router, prefix="/accounts", tags=["accounts"])
api_router.include_router(sync.router, prefix="/sync", tags=["sync"])
