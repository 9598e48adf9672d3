from pydantic import BaseModel, Field
from typing import Any, Dict, Optional
from datetime import datetime


class FreeSubscriptionRequest(BaseModel):
    email: Optional[str] = None


class GrantAccessRequest(BaseModel):
    email: str
    plan_type: str = Field(alias="planType")

    class Config:
        populate_by_name = True


class PaymentSummary(BaseModel):
    amount: Optional[float] = None
    planType: Optional[str] = None
    paidAt: Optional[datetime] = None


class SubscriptionOut(BaseModel):
    id: str
    type: str
    startDate: datetime
    endDate: datetime
    isActive: bool
    isValid: bool
    isFree: bool = False
    payment: Optional[PaymentSummary] = None
    unlockedContent: Optional[Dict[str, Any]] = None


class AccessOut(BaseModel):
    hasEffectivePlan: bool
    planType: Optional[str] = None
    isPremiumUnlocked: bool
    shouldShowFourDayPlan: bool
    dashboardView: str
    effectiveSubscriptionId: Optional[str] = None
