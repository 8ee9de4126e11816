from pydantic import BaseModel
from typing import Dict


class PosSettingsRead(BaseModel):
    tax_rate: float
    tier_discount_rates: Dict[str, float]
    low_stock_threshold: int
