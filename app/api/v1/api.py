from fastapi import APIRouter

from app.api.v1.routes import auth, objectives, transactions, users

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth")
api_router.include_router(users.router, prefix="/users")
api_router.include_router(transactions.router)
api_router.include_router(objectives.router)
