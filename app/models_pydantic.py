from typing import Optional, List, Dict
from datetime import date
from decimal import Decimal
from pydantic import BaseModel, ConfigDict, EmailStr, Field

class CityBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)

class CityResponse(CityBase):
    id: int

    model_config = ConfigDict(from_attributes=True)

class NeighborhoodBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)
    city_id: int

class NeighborhoodResponse(NeighborhoodBase):
    id: int

    model_config = ConfigDict(from_attributes=True)

class UserBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: Optional[EmailStr] = None

class UserResponse(UserBase):
    id: int

    model_config = ConfigDict(from_attributes=True)

class ListingBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    address: Optional[str] = Field(None, max_length=255)
    listing_type: Optional[str] = Field(None, max_length=50)
    price: Decimal = Field(..., ge=0)
    max_guests: Optional[int] = Field(None, gt=0)
    neighborhood_id: int
    host_id: int
    active: bool = True

class ListingResponse(ListingBase):
    id: int

    model_config = ConfigDict(from_attributes=True)

class ReservationBase(BaseModel):
    checkin: date
    checkout: date
    guest_count: Optional[int] = Field(None, gt=0)
    status: str = Field("confirmed", pattern="^(confirmed|completed|cancelled)$")
    listing_id: int
    guest_id: int

class ReservationResponse(ReservationBase):
    id: int

    model_config = ConfigDict(from_attributes=True)

class ReviewBase(BaseModel):
    description: Optional[str] = None
    rating: int = Field(..., ge=1, le=5)
    cleanliness_rating: Optional[int] = Field(None, ge=1, le=5)
    communication_rating: Optional[int] = Field(None, ge=1, le=5)
    guest_id: int
    reservation_id: int

class ReviewResponse(ReviewBase):
    id: int

    model_config = ConfigDict(from_attributes=True)

# ---------- Analytics results ----------
class EarningsResponse(BaseModel):
    entity_id: int
    total_earnings: Decimal

class AveragePriceResponse(BaseModel):
    entity_id: int
    average_price: Decimal

class AverageRatingResponse(BaseModel):
    average_rating: float = Field(..., ge=0, le=5)

class RatingHistogramResponse(BaseModel):
    ratings: Dict[int, int]

class AvailabilityResponse(BaseModel):
    listing_id: int
    on: date
    available: bool

class ReservationCostResponse(BaseModel):
    reservation_id: int
    duration: int
    total_cost: Decimal

class DestinationsResponse(BaseModel):
    user_id: int
    cities: List[CityResponse]

class CountResponse(BaseModel):
    entity_id: int
    count: int = Field(..., ge=0)
