"""API v1 router composition."""

from fastapi import APIRouter

from pos_core.api.v1.endpoints import orders, payments, realtime

api_router: APIRouter = APIRouter()
api_router.include_router(orders.router, prefix="/outlets/{outlet_id}/orders", tags=["orders"])
api_router.include_router(payments.router, prefix="/outlets/{outlet_id}/orders", tags=["payments"])

ws_router: APIRouter = APIRouter()
ws_router.include_router(realtime.router, prefix="/ws", tags=["realtime"])
