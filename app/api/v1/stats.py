from fastapi import APIRouter, Depends

from app.api.v1.schemas import StatsSchema
from app.application.use_cases.gateway import GatewayService
from app.wiring.dependencies import get_gateway

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("", response_model=StatsSchema)
def get_stats(gateway: GatewayService = Depends(get_gateway)):
    return StatsSchema.from_view(gateway.get_stats())
