from fastapi import APIRouter
from app.api.v1.endpoints import groups, expenses, settlements, wallets

api_router = APIRouter()

api_router.include_router(groups.router, prefix="/groups", tags=["groups"])
api_router.include_router(expenses.router, prefix="/groups", tags=["expenses"])
api_router.include_router(settlements.router, tags=["settlements"])
api_router.include_router(wallets.router, prefix="/wallets", tags=["wallets"])
