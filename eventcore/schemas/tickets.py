from pydantic import BaseModel, ConfigDict, Field
from decimal import Decimal
from datetime import datetime
from typing import Optional

from eventcore.models.tickets import TicketStatus


class TicketIssueSchema(BaseModel):
    event_id: int
    user_id: int


class TicketCheckInSchema(BaseModel):
    qr_code: str = Field(..., min_length=1, max_length=64)


class TicketResponseSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    event_id: int
    user_id: int
    qr_code: str
    status: TicketStatus
    price: Optional[Decimal] = None
    created_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    used_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
