from fastapi import APIRouter
from app.api.v1.ipd import routes as ipd

api_router = APIRouter()
api_router.include_router(ipd.router, prefix="/ipd", tags=["ipd"])
