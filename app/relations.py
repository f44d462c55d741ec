"""Declared traversals over the rental graph.

A ``Step`` is one foreign-key hop; a ``Path`` chains steps. Paths are module
constants so every join an aggregation uses is spelled out in one place.
"""

from dataclasses import dataclass
from typing import Tuple

import models_sqlalchemy as models
from entity_store import Snapshot, model_of


@dataclass(frozen=True)
class Step:
    name: str
    source: type
    target: type


@dataclass(frozen=True)
class Path:
    name: str
    steps: Tuple[Step, ...]

    @property
    def source(self):
        return self.steps[0].source

    @property
    def target(self):
        return self.steps[-1].target

    def __add__(self, other):
        if self.target is not other.source:
            raise ValueError(f"cannot join {self.name} ({self.target.__name__}) to {other.name}")
        return Path(f"{self.name}.{other.name}", self.steps + other.steps)


# ---------- Steps ----------
CITY_TO_NEIGHBORHOODS = Step("neighborhoods", models.City, models.Neighborhood)
NEIGHBORHOOD_TO_CITY = Step("city", models.Neighborhood, models.City)
NEIGHBORHOOD_TO_LISTINGS = Step("listings", models.Neighborhood, models.Listing)
LISTING_TO_NEIGHBORHOOD = Step("neighborhood", models.Listing, models.Neighborhood)
LISTING_TO_HOST = Step("host", models.Listing, models.User)
LISTING_TO_RESERVATIONS = Step("reservations", models.Listing, models.Reservation)
HOST_TO_LISTINGS = Step("listings", models.User, models.Listing)
GUEST_TO_TRIPS = Step("trips", models.User, models.Reservation)
GUEST_TO_REVIEWS = Step("reviews", models.User, models.Review)
RESERVATION_TO_LISTING = Step("listing", models.Reservation, models.Listing)
RESERVATION_TO_GUEST = Step("guest", models.Reservation, models.User)
RESERVATION_TO_REVIEWS = Step("reviews", models.Reservation, models.Review)
REVIEW_TO_RESERVATION = Step("reservation", models.Review, models.Reservation)
REVIEW_TO_GUEST = Step("guest", models.Review, models.User)


def _path(name, *steps):
    return Path(name, steps)


# ---------- Paths ----------
CITY_NEIGHBORHOODS = _path("city.neighborhoods", CITY_TO_NEIGHBORHOODS)
CITY_LISTINGS = CITY_NEIGHBORHOODS + _path("listings", NEIGHBORHOOD_TO_LISTINGS)
CITY_RESERVATIONS = CITY_LISTINGS + _path("reservations", LISTING_TO_RESERVATIONS)

NEIGHBORHOOD_CITY = _path("neighborhood.city", NEIGHBORHOOD_TO_CITY)
NEIGHBORHOOD_LISTINGS = _path("neighborhood.listings", NEIGHBORHOOD_TO_LISTINGS)
NEIGHBORHOOD_RESERVATIONS = NEIGHBORHOOD_LISTINGS + _path("reservations", LISTING_TO_RESERVATIONS)

LISTING_NEIGHBORHOOD = _path("listing.neighborhood", LISTING_TO_NEIGHBORHOOD)
LISTING_CITY = LISTING_NEIGHBORHOOD + _path("city", NEIGHBORHOOD_TO_CITY)
LISTING_HOST = _path("listing.host", LISTING_TO_HOST)
LISTING_RESERVATIONS = _path("listing.reservations", LISTING_TO_RESERVATIONS)
LISTING_REVIEWS = LISTING_RESERVATIONS + _path("reviews", RESERVATION_TO_REVIEWS)
LISTING_GUESTS = LISTING_RESERVATIONS + _path("guests", RESERVATION_TO_GUEST)

HOST_LISTINGS = _path("host.listings", HOST_TO_LISTINGS)
HOST_RESERVATIONS = HOST_LISTINGS + _path("reservations", LISTING_TO_RESERVATIONS)
HOST_GUESTS = HOST_RESERVATIONS + _path("guests", RESERVATION_TO_GUEST)
HOST_REVIEWS = HOST_RESERVATIONS + _path("reviews", RESERVATION_TO_REVIEWS)

GUEST_TRIPS = _path("guest.trips", GUEST_TO_TRIPS)
GUEST_REVIEWS = _path("guest.reviews", GUEST_TO_REVIEWS)

RESERVATION_LISTING = _path("reservation.listing", RESERVATION_TO_LISTING)
RESERVATION_GUEST = _path("reservation.guest", RESERVATION_TO_GUEST)
RESERVATION_REVIEWS = _path("reservation.reviews", RESERVATION_TO_REVIEWS)
RESERVATION_NEIGHBORHOOD = RESERVATION_LISTING + _path("neighborhood", LISTING_TO_NEIGHBORHOOD)
RESERVATION_CITY = RESERVATION_NEIGHBORHOOD + _path("city", NEIGHBORHOOD_TO_CITY)

REVIEW_RESERVATION = _path("review.reservation", REVIEW_TO_RESERVATION)
REVIEW_GUEST = _path("review.guest", REVIEW_TO_GUEST)
REVIEW_LISTING = REVIEW_RESERVATION + _path("listing", RESERVATION_TO_LISTING)
REVIEW_CITY = REVIEW_RESERVATION + RESERVATION_CITY


def distinct(items):
    """Drop repeated entities (by identity of type and id), keeping first occurrence."""
    seen = set()
    result = []
    for item in items:
        key = (type(item), item.id)
        if key not in seen:
            seen.add(key)
            result.append(item)
    return result


class Resolver:
    """Executes declared paths against a ``Snapshot``."""

    def __init__(self, snapshot: Snapshot):
        self.snapshot = snapshot
        s = snapshot
        self._hops = {
            CITY_TO_NEIGHBORHOODS: lambda e: s.neighborhoods_by_city.get(e.id, []),
            NEIGHBORHOOD_TO_CITY: lambda e: [s.city_by_id[e.city_id]],
            NEIGHBORHOOD_TO_LISTINGS: lambda e: s.listings_by_neighborhood.get(e.id, []),
            LISTING_TO_NEIGHBORHOOD: lambda e: [s.neighborhood_by_id[e.neighborhood_id]],
            LISTING_TO_HOST: lambda e: [s.user_by_id[e.host_id]],
            LISTING_TO_RESERVATIONS: lambda e: s.reservations_by_listing.get(e.id, []),
            HOST_TO_LISTINGS: lambda e: s.listings_by_host.get(e.id, []),
            GUEST_TO_TRIPS: lambda e: s.trips_by_guest.get(e.id, []),
            GUEST_TO_REVIEWS: lambda e: s.reviews_by_guest.get(e.id, []),
            RESERVATION_TO_LISTING: lambda e: [s.listing_by_id[e.listing_id]],
            RESERVATION_TO_GUEST: lambda e: [s.user_by_id[e.guest_id]],
            RESERVATION_TO_REVIEWS: lambda e: s.reviews_by_reservation.get(e.id, []),
            REVIEW_TO_RESERVATION: lambda e: [s.reservation_by_id[e.reservation_id]],
            REVIEW_TO_GUEST: lambda e: [s.user_by_id[e.guest_id]],
        }

    def related(self, entity, path: Path):
        """Records reached from ``entity`` (a session row or a record) along ``path``."""
        if not issubclass(model_of(entity), path.source):
            raise TypeError(f"{path.name} starts at {path.source.__name__}, got {model_of(entity).__name__}")
        frontier = [self.snapshot.resolve(entity)]
        for step in path.steps:
            hop = self._hops[step]
            frontier = [target for current in frontier for target in hop(current)]
        return frontier

    def related_one(self, entity, path: Path):
        targets = self.related(entity, path)
        return targets[0] if targets else None
