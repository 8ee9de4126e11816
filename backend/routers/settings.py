from fastapi import APIRouter, Depends

from core.auth import current_active_user
from core.config import settings
from db.users import User
from schemas.settings import PosSettingsRead

router = APIRouter()


@router.get("/", response_model=PosSettingsRead)
async def get_pos_settings(user: User = Depends(current_active_user)):
    return {
        "tax_rate": settings.tax_rate,
        "tier_discount_rates": dict(settings.tier_discount_rates),
        "low_stock_threshold": settings.low_stock_threshold,
    }
