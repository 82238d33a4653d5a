from datetime import datetime
from decimal import Decimal
from typing import Optional, Union
from pydantic import BaseModel


class SubscriptionStateOut(BaseModel):
    active: bool
    plan_name: Optional[str] = None
    charge_id: Optional[Union[int, str]] = None
    status: Optional[str] = None
    trial_ends_on: Optional[datetime] = None
    billing_on: Optional[datetime] = None


class ChargeOut(BaseModel):
    charge_id: Union[int, str]
    name: str
    price: Decimal
    status: str
    confirmation_url: Optional[str] = None
