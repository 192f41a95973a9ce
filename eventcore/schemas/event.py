from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from eventcore.models.event import EventStatus


class EventCreateSchema(BaseModel):
    title: str = Field(..., min_length=3, max_length=255)
    slug: str = Field(..., min_length=1, max_length=255, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    description: Optional[str] = Field(default=None, max_length=5000)
    image: Optional[str] = Field(default=None, max_length=500)
    start_date: datetime
    end_date: Optional[datetime] = None
    location: Optional[str] = Field(default=None, max_length=255)
    address: Optional[str] = Field(default=None, max_length=255)
    city: Optional[str] = Field(default=None, max_length=100)
    country: Optional[str] = Field(default=None, max_length=100)
    capacity: int = Field(..., gt=0)
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    featured: bool = False
    tags: List[str] = Field(default_factory=list)
    organizer_id: int
    category_id: int
    publish: bool = False

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, v: List[str]) -> List[str]:
        seen = []
        for tag in v:
            tag = tag.strip()
            if tag and tag not in seen:
                seen.append(tag)
        return seen

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class EventPriceUpdateSchema(BaseModel):
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)


class EventResponseSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    slug: str
    description: Optional[str] = None
    image: Optional[str] = None
    start_date: datetime
    end_date: Optional[datetime] = None
    location: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    capacity: int
    price: Optional[Decimal] = None
    status: EventStatus
    published: bool
    featured: bool
    tags: List[str]
    organizer_id: int
    category_id: int


class EventCapacityResponseSchema(BaseModel):
    event_id: int
    capacity: int
    remaining: int
