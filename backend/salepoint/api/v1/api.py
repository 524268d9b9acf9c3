from fastapi import APIRouter

from backend.salepoint.api.v1.endpoints import catalog, customers, sales, sessions

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(catalog.router, prefix="/catalog", tags=["catalog"])
api_router.include_router(customers.router, prefix="/customers", tags=["customers"])
api_router.include_router(sessions.router, tags=["sessions"])
api_router.include_router(sales.router, prefix="/sales", tags=["sales"])
