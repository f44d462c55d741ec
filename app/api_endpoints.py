import logging
import os
from datetime import date
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Depends, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

import models_sqlalchemy as models
import models_pydantic as schemas
from analytics import (
    RECENT_RESERVATIONS_LIMIT, RECENT_REVIEWS_LIMIT, TOP_EARNERS_LIMIT, RentalAnalytics
)
from entity_store import EntityStore
from errors import InvariantViolation

logger = logging.getLogger(__name__)

DATABASE_URL = models.DATABASE_URL
CORS_ALLOW_ORIGINS = [o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip()]

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

app = FastAPI(title="Rental analytics")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)

# Dependency to get a DB session
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_store(db: Session = Depends(get_db)):
    return EntityStore(db)

def get_analytics(store: EntityStore = Depends(get_store)):
    return RentalAnalytics(store)

@app.exception_handler(InvariantViolation)
def invariant_violation_handler(request: Request, exc: InvariantViolation):
    logger.error("Refusing to answer %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": f"Inconsistent data: {exc}"},
    )

# ---------- Utility Functions ----------
def fetch_or_404(store, model, entity_id):
    entity = store.fetch_by_id(model, entity_id)
    if not entity:
        raise HTTPException(status_code=404, detail=f"{model.__name__} not found")
    return entity

def check_range(start, end):
    if end <= start:
        raise HTTPException(status_code=400, detail="end must be after start")

# ---------- City Endpoints ----------
@app.get("/cities/most-reservations", response_model=Optional[schemas.CityResponse])
def city_most_reservations(analytics: RentalAnalytics = Depends(get_analytics)):
    return analytics.most_reservations()

@app.get("/cities/biggest-host", response_model=Optional[schemas.CityResponse])
def city_biggest_host(analytics: RentalAnalytics = Depends(get_analytics)):
    return analytics.biggest_host()

@app.get("/cities/highest-rated", response_model=Optional[schemas.CityResponse])
def city_highest_rated(analytics: RentalAnalytics = Depends(get_analytics)):
    return analytics.highest_rated_city()

@app.get("/cities/most-listings", response_model=Optional[schemas.CityResponse])
def city_most_listings(analytics: RentalAnalytics = Depends(get_analytics)):
    return analytics.most_listings()

@app.get("/cities/by-name/{city_name}/listings", response_model=List[schemas.ListingResponse])
def city_listings_by_name(city_name: str, store: EntityStore = Depends(get_store),
                          analytics: RentalAnalytics = Depends(get_analytics)):
    if not store.fetch_where(models.City, name=city_name):
        raise HTTPException(status_code=404, detail="City not found")
    return analytics.listings_by_city(city_name)

@app.get("/cities/{city_id}/neighborhoods", response_model=List[schemas.NeighborhoodResponse])
def city_neighborhoods(city_id: int, store: EntityStore = Depends(get_store),
                       analytics: RentalAnalytics = Depends(get_analytics)):
    city = fetch_or_404(store, models.City, city_id)
    return analytics.neighborhoods(city)

@app.get("/cities/{city_id}/listings", response_model=List[schemas.ListingResponse])
def city_listings(city_id: int, store: EntityStore = Depends(get_store),
                  analytics: RentalAnalytics = Depends(get_analytics)):
    city = fetch_or_404(store, models.City, city_id)
    return analytics.city_listings(city)

# ---------- Neighborhood Endpoints ----------
@app.get("/neighborhoods/highest-earner", response_model=Optional[schemas.NeighborhoodResponse])
def neighborhood_highest_earner(analytics: RentalAnalytics = Depends(get_analytics)):
    return analytics.highest_earner()

@app.get("/neighborhoods/most-expensive", response_model=Optional[schemas.NeighborhoodResponse])
def neighborhood_most_expensive(analytics: RentalAnalytics = Depends(get_analytics)):
    return analytics.most_expensive_neighborhood()

@app.get("/neighborhoods/{neighborhood_id}/most-popular-listing", response_model=Optional[schemas.ListingResponse])
def neighborhood_most_popular_listing(neighborhood_id: int, store: EntityStore = Depends(get_store),
                                      analytics: RentalAnalytics = Depends(get_analytics)):
    neighborhood = fetch_or_404(store, models.Neighborhood, neighborhood_id)
    return analytics.most_popular_listing(neighborhood)

@app.get("/neighborhoods/{neighborhood_id}/average-price", response_model=schemas.AveragePriceResponse)
def neighborhood_average_price(neighborhood_id: int, store: EntityStore = Depends(get_store),
                               analytics: RentalAnalytics = Depends(get_analytics)):
    neighborhood = fetch_or_404(store, models.Neighborhood, neighborhood_id)
    return schemas.AveragePriceResponse(
        entity_id=neighborhood.id,
        average_price=analytics.average_price(neighborhood)
    )

@app.get("/neighborhoods/{neighborhood_id}/earnings", response_model=schemas.EarningsResponse)
def neighborhood_earnings(neighborhood_id: int, store: EntityStore = Depends(get_store),
                          analytics: RentalAnalytics = Depends(get_analytics)):
    neighborhood = fetch_or_404(store, models.Neighborhood, neighborhood_id)
    return schemas.EarningsResponse(
        entity_id=neighborhood.id,
        total_earnings=analytics.neighborhood_total_earnings(neighborhood)
    )

@app.get("/neighborhoods/{neighborhood_id}/reservation-count", response_model=schemas.CountResponse)
def neighborhood_reservation_count(neighborhood_id: int, store: EntityStore = Depends(get_store),
                                   analytics: RentalAnalytics = Depends(get_analytics)):
    neighborhood = fetch_or_404(store, models.Neighborhood, neighborhood_id)
    return schemas.CountResponse(entity_id=neighborhood.id, count=analytics.reservation_count(neighborhood))

# ---------- User Endpoints ----------
@app.get("/users/hosts", response_model=List[schemas.UserResponse])
def list_hosts(analytics: RentalAnalytics = Depends(get_analytics)):
    return analytics.hosts()

@app.get("/users/guests", response_model=List[schemas.UserResponse])
def list_guests(analytics: RentalAnalytics = Depends(get_analytics)):
    return analytics.guests()

@app.get("/users/top-host", response_model=Optional[schemas.UserResponse])
def user_top_host(analytics: RentalAnalytics = Depends(get_analytics)):
    return analytics.top_host()

@app.get("/users/most-traveled", response_model=Optional[schemas.UserResponse])
def user_most_traveled(analytics: RentalAnalytics = Depends(get_analytics)):
    return analytics.most_traveled()

@app.get("/users/{user_id}/top-destinations", response_model=schemas.DestinationsResponse)
def user_top_destinations(user_id: int, store: EntityStore = Depends(get_store),
                          analytics: RentalAnalytics = Depends(get_analytics)):
    user = fetch_or_404(store, models.User, user_id)
    cities = analytics.top_three_destinations(user)
    return schemas.DestinationsResponse(
        user_id=user.id,
        cities=[schemas.CityResponse.model_validate(c) for c in cities]
    )

@app.get("/users/{user_id}/favorite-neighborhood", response_model=Optional[schemas.NeighborhoodResponse])
def user_favorite_neighborhood(user_id: int, store: EntityStore = Depends(get_store),
                               analytics: RentalAnalytics = Depends(get_analytics)):
    user = fetch_or_404(store, models.User, user_id)
    return analytics.favorite_neighborhood(user)

@app.get("/users/{user_id}/earnings", response_model=schemas.EarningsResponse)
def user_earnings(user_id: int, store: EntityStore = Depends(get_store),
                  analytics: RentalAnalytics = Depends(get_analytics)):
    user = fetch_or_404(store, models.User, user_id)
    return schemas.EarningsResponse(entity_id=user.id, total_earnings=analytics.user_total_earnings(user))

@app.get("/users/{user_id}/guests", response_model=List[schemas.UserResponse])
def user_guests(user_id: int, store: EntityStore = Depends(get_store),
                analytics: RentalAnalytics = Depends(get_analytics)):
    user = fetch_or_404(store, models.User, user_id)
    return analytics.host_guests(user)

@app.get("/users/{user_id}/host-reviews", response_model=List[schemas.ReviewResponse])
def user_host_reviews(user_id: int, store: EntityStore = Depends(get_store),
                      analytics: RentalAnalytics = Depends(get_analytics)):
    user = fetch_or_404(store, models.User, user_id)
    return analytics.host_reviews(user)

# ---------- Listing Endpoints ----------
@app.get("/listings/top-earners", response_model=List[schemas.ListingResponse])
def listing_top_earners(n: int = Query(TOP_EARNERS_LIMIT, ge=0),
                        analytics: RentalAnalytics = Depends(get_analytics)):
    return analytics.top_earners(n)

@app.get("/listings/highest-rated", response_model=List[schemas.ListingResponse])
def listing_highest_rated(analytics: RentalAnalytics = Depends(get_analytics)):
    return analytics.highest_rated_listings()

@app.get("/listings/most-expensive", response_model=Optional[schemas.ListingResponse])
def listing_most_expensive(analytics: RentalAnalytics = Depends(get_analytics)):
    return analytics.most_expensive_listing()

@app.get("/listings/available", response_model=List[schemas.ListingResponse])
def listings_available(start: date, end: date, analytics: RentalAnalytics = Depends(get_analytics)):
    check_range(start, end)
    return analytics.available_between(start, end)

@app.get("/listings/{listing_id}/earnings", response_model=schemas.EarningsResponse)
def listing_earnings(listing_id: int, store: EntityStore = Depends(get_store),
                     analytics: RentalAnalytics = Depends(get_analytics)):
    listing = fetch_or_404(store, models.Listing, listing_id)
    return schemas.EarningsResponse(entity_id=listing.id, total_earnings=analytics.listing_total_earnings(listing))

@app.get("/listings/{listing_id}/availability", response_model=schemas.AvailabilityResponse)
def listing_availability(listing_id: int, on: date, store: EntityStore = Depends(get_store),
                         analytics: RentalAnalytics = Depends(get_analytics)):
    listing = fetch_or_404(store, models.Listing, listing_id)
    return schemas.AvailabilityResponse(listing_id=listing.id, on=on, available=analytics.is_available(listing, on))

@app.get("/listings/{listing_id}/average-rating", response_model=schemas.AverageRatingResponse)
def listing_average_rating(listing_id: int, store: EntityStore = Depends(get_store),
                           analytics: RentalAnalytics = Depends(get_analytics)):
    listing = fetch_or_404(store, models.Listing, listing_id)
    return schemas.AverageRatingResponse(average_rating=analytics.average_review_rating(listing))

@app.get("/listings/{listing_id}/most-recent-review", response_model=Optional[schemas.ReviewResponse])
def listing_most_recent_review(listing_id: int, store: EntityStore = Depends(get_store),
                               analytics: RentalAnalytics = Depends(get_analytics)):
    listing = fetch_or_404(store, models.Listing, listing_id)
    return analytics.most_recent_review(listing)

@app.get("/listings/{listing_id}/reviews", response_model=List[schemas.ReviewResponse])
def listing_reviews(listing_id: int, store: EntityStore = Depends(get_store),
                    analytics: RentalAnalytics = Depends(get_analytics)):
    listing = fetch_or_404(store, models.Listing, listing_id)
    return analytics.listing_reviews(listing)

@app.get("/listings/{listing_id}/guests", response_model=List[schemas.UserResponse])
def listing_guests(listing_id: int, store: EntityStore = Depends(get_store),
                   analytics: RentalAnalytics = Depends(get_analytics)):
    listing = fetch_or_404(store, models.Listing, listing_id)
    return analytics.listing_guests(listing)

@app.get("/listings/{listing_id}/booking-count", response_model=schemas.CountResponse)
def listing_booking_count(listing_id: int, store: EntityStore = Depends(get_store),
                          analytics: RentalAnalytics = Depends(get_analytics)):
    listing = fetch_or_404(store, models.Listing, listing_id)
    return schemas.CountResponse(entity_id=listing.id, count=analytics.booking_count(listing))

# ---------- Reservation Endpoints ----------
@app.get("/reservations/recent", response_model=List[schemas.ReservationResponse])
def reservations_recent(limit: int = Query(RECENT_RESERVATIONS_LIMIT, ge=0),
                        analytics: RentalAnalytics = Depends(get_analytics)):
    return analytics.most_recent_reservations(limit)

@app.get("/reservations/highest-grossing", response_model=Optional[schemas.ReservationResponse])
def reservations_highest_grossing(analytics: RentalAnalytics = Depends(get_analytics)):
    return analytics.highest_grossing()

@app.get("/reservations/by-month", response_model=List[schemas.ReservationResponse])
def reservations_by_month(month: int = Query(..., ge=1, le=12), year: int = Query(..., ge=1),
                          analytics: RentalAnalytics = Depends(get_analytics)):
    return analytics.reservations_by_month(month, year)

@app.get("/reservations/current-guests", response_model=List[schemas.UserResponse])
def reservations_current_guests(on: Optional[date] = None, analytics: RentalAnalytics = Depends(get_analytics)):
    return analytics.current_guests(on)

@app.get("/reservations/{reservation_id}/cost", response_model=schemas.ReservationCostResponse)
def reservation_cost(reservation_id: int, store: EntityStore = Depends(get_store),
                     analytics: RentalAnalytics = Depends(get_analytics)):
    reservation = fetch_or_404(store, models.Reservation, reservation_id)
    return schemas.ReservationCostResponse(
        reservation_id=reservation.id,
        duration=analytics.duration(reservation),
        total_cost=analytics.total_cost(reservation)
    )

# ---------- Review Endpoints ----------
@app.get("/reviews/recent", response_model=List[schemas.ReviewResponse])
def reviews_recent(limit: int = Query(RECENT_REVIEWS_LIMIT, ge=0),
                   analytics: RentalAnalytics = Depends(get_analytics)):
    return analytics.most_recent_reviews(limit)

@app.get("/reviews/five-star", response_model=List[schemas.ReviewResponse])
def reviews_five_star(analytics: RentalAnalytics = Depends(get_analytics)):
    return analytics.five_star_reviews()

@app.get("/reviews/low-rated", response_model=List[schemas.ReviewResponse])
def reviews_low_rated(analytics: RentalAnalytics = Depends(get_analytics)):
    return analytics.low_rated_reviews()

@app.get("/reviews/average-rating", response_model=schemas.AverageRatingResponse)
def reviews_average_rating(analytics: RentalAnalytics = Depends(get_analytics)):
    return schemas.AverageRatingResponse(average_rating=analytics.average_rating())

@app.get("/reviews/ratings", response_model=schemas.RatingHistogramResponse)
def reviews_detailed_ratings(analytics: RentalAnalytics = Depends(get_analytics)):
    return schemas.RatingHistogramResponse(ratings=analytics.detailed_ratings())

@app.get("/reviews/by-rating/{rating}", response_model=List[schemas.ReviewResponse])
def reviews_by_rating(rating: int, analytics: RentalAnalytics = Depends(get_analytics)):
    if not 1 <= rating <= 5:
        raise HTTPException(status_code=400, detail="rating must be between 1 and 5")
    return analytics.reviews_by_rating(rating)
