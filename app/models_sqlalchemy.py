import os
from datetime import datetime, timezone

from dotenv import load_dotenv
from sqlalchemy import (
    Boolean, Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, Index
)
from sqlalchemy.orm import declarative_base, relationship

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./rentals.db")

RESERVATION_STATUSES = ("confirmed", "completed", "cancelled")

Base = declarative_base()


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TimestampMixin:
    created_at = Column(DateTime, nullable=False, default=_utcnow)
    updated_at = Column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)


class City(TimestampMixin, Base):
    __tablename__ = "cities"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    state = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True, default="USA")

    neighborhoods = relationship("Neighborhood", back_populates="city", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<City {self.id}: {self.name}>"

class Neighborhood(TimestampMixin, Base):
    __tablename__ = "neighborhoods"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    zip_code = Column(String(20), nullable=True)
    city_id = Column(Integer, ForeignKey("cities.id"), nullable=False)

    city = relationship("City", back_populates="neighborhoods")
    listings = relationship("Listing", back_populates="neighborhood", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Neighborhood {self.id}: {self.name}>"

class User(TimestampMixin, Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True, unique=True)

    # host role
    listings = relationship("Listing", back_populates="host", cascade="all, delete-orphan")
    # guest role
    trips = relationship("Reservation", back_populates="guest", cascade="all, delete-orphan")
    reviews = relationship("Review", back_populates="guest", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User {self.id}: {self.name}>"

class Listing(TimestampMixin, Base):
    __tablename__ = "listings"
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    address = Column(String(255), nullable=True)
    listing_type = Column(String(50), nullable=True)  # private room, entire apartment, shared room
    price = Column(Numeric(8, 2), nullable=False)
    max_guests = Column(Integer, nullable=True)
    neighborhood_id = Column(Integer, ForeignKey("neighborhoods.id"), nullable=False)
    host_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    active = Column(Boolean, nullable=False, default=True)

    neighborhood = relationship("Neighborhood", back_populates="listings")
    host = relationship("User", back_populates="listings")
    reservations = relationship("Reservation", back_populates="listing", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Listing {self.id}: {self.title}>"

class Reservation(TimestampMixin, Base):
    __tablename__ = "reservations"
    id = Column(Integer, primary_key=True, index=True)
    checkin = Column(Date, nullable=False)
    checkout = Column(Date, nullable=False)
    guest_count = Column(Integer, nullable=True)
    status = Column(String(20), nullable=False, default="confirmed")
    listing_id = Column(Integer, ForeignKey("listings.id"), nullable=False)
    guest_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    listing = relationship("Listing", back_populates="reservations")
    guest = relationship("User", back_populates="trips")
    reviews = relationship("Review", back_populates="reservation", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Reservation {self.id}: {self.checkin} -> {self.checkout}>"

class Review(TimestampMixin, Base):
    __tablename__ = "reviews"
    id = Column(Integer, primary_key=True, index=True)
    description = Column(Text, nullable=True)
    rating = Column(Integer, nullable=False)
    cleanliness_rating = Column(Integer, nullable=True)
    communication_rating = Column(Integer, nullable=True)
    guest_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    reservation_id = Column(Integer, ForeignKey("reservations.id"), nullable=False)

    guest = relationship("User", back_populates="reviews")
    reservation = relationship("Reservation", back_populates="reviews")

    def __repr__(self):
        return f"<Review {self.id}: {self.rating}>"

Index("ix_listings_neighborhood_id", Listing.neighborhood_id)
Index("ix_listings_host_id", Listing.host_id)
Index("ix_reservations_listing_id", Reservation.listing_id)
Index("ix_reservations_guest_id", Reservation.guest_id)
Index("ix_reviews_reservation_id", Review.reservation_id)
