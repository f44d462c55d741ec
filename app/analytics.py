"""Cross-entity queries over the rental marketplace.

``RentalAnalytics`` is built around an explicit ``EntityStore`` handle. It loads a
``Snapshot`` of every table once and answers each query from that snapshot, so
repeated calls give identical results until ``refresh()`` is called.

Empty inputs never raise: single-entity queries return None, collections return
``[]`` and sums/averages return 0.
"""

import logging
from datetime import date
from decimal import Decimal

import aggregation as agg
import availability
import earnings
import relations as rel
from entity_store import EntityStore, Snapshot
from relations import Resolver

logger = logging.getLogger(__name__)

RECENT_RESERVATIONS_LIMIT = 5
RECENT_REVIEWS_LIMIT = 10
TOP_EARNERS_LIMIT = 3
TOP_DESTINATIONS_LIMIT = 3
HIGHLY_RATED_THRESHOLD = 4
LOW_RATING_CEILING = 2


def _creation_order(entity):
    return (entity.created_at, entity.id)


class RentalAnalytics:

    def __init__(self, store: EntityStore):
        self.store = store
        self.refresh()

    def refresh(self):
        self.snapshot = Snapshot.load(self.store)
        self.resolver = Resolver(self.snapshot)

    def related(self, entity, path):
        return self.resolver.related(entity, path)

    def _reservations_of(self, listing):
        return self.related(listing, rel.LISTING_RESERVATIONS)

    # ---------- City ----------
    def neighborhoods(self, city):
        return self.related(city, rel.CITY_NEIGHBORHOODS)

    def city_listings(self, city):
        return self.related(city, rel.CITY_LISTINGS)

    def most_reservations(self):
        """City whose listings hold the most reservations."""
        counts = agg.group_count(
            self.snapshot.reservations,
            lambda r: self.resolver.related_one(r, rel.RESERVATION_CITY),
        )
        return agg.argmax_key(counts)

    def biggest_host(self):
        """City with the most hosted listings.

        Despite the name this counts listings per city; it does not look for the
        host with the most listings.
        """
        hosted = [l for l in self.snapshot.listings if self.resolver.related_one(l, rel.LISTING_HOST)]
        counts = agg.group_count(hosted, lambda l: self.resolver.related_one(l, rel.LISTING_CITY))
        return agg.argmax_key(counts)

    def highest_rated_city(self):
        averages = agg.group_average(
            self.snapshot.reviews,
            lambda review: self.resolver.related_one(review, rel.REVIEW_CITY),
            lambda review: review.rating,
        )
        return agg.argmax_key(averages)

    def most_listings(self):
        counts = agg.group_count(
            self.snapshot.listings,
            lambda l: self.resolver.related_one(l, rel.LISTING_CITY),
        )
        return agg.argmax_key(counts)

    # ---------- Neighborhood ----------
    def most_popular_listing(self, neighborhood):
        booked = [l for l in self.related(neighborhood, rel.NEIGHBORHOOD_LISTINGS) if self._reservations_of(l)]
        return agg.argmax(booked, lambda l: len(self._reservations_of(l)))

    def average_price(self, neighborhood):
        prices = [Decimal(l.price) for l in self.related(neighborhood, rel.NEIGHBORHOOD_LISTINGS)]
        if not prices:
            return earnings.ZERO
        return earnings.to_money(agg.average(prices))

    def reservation_count(self, neighborhood):
        return len(self.related(neighborhood, rel.NEIGHBORHOOD_RESERVATIONS))

    def neighborhood_total_earnings(self, neighborhood):
        listings = self.related(neighborhood, rel.NEIGHBORHOOD_LISTINGS)
        return sum((self.listing_total_earnings(l) for l in listings), earnings.ZERO)

    def highest_earner(self):
        """Neighborhood whose listings earned the most; every neighborhood competes, even at 0."""
        totals = {n: self.neighborhood_total_earnings(n) for n in self.snapshot.neighborhoods}
        return agg.argmax_key(totals)

    def most_expensive_neighborhood(self):
        averages = agg.group_average(
            self.snapshot.listings,
            lambda l: self.resolver.related_one(l, rel.LISTING_NEIGHBORHOOD),
            lambda l: Decimal(l.price),
        )
        return agg.argmax_key(averages)

    # ---------- User ----------
    def is_host(self, user):
        return bool(self.related(user, rel.HOST_LISTINGS))

    def trip_count(self, user):
        return len(self.related(user, rel.GUEST_TRIPS))

    def top_three_destinations(self, user):
        visits = agg.group_count(
            self.related(user, rel.GUEST_TRIPS),
            lambda trip: self.resolver.related_one(trip, rel.RESERVATION_CITY),
        )
        return agg.top_n(visits, visits.__getitem__, TOP_DESTINATIONS_LIMIT)

    def favorite_neighborhood(self, user):
        visits = agg.group_count(
            self.related(user, rel.GUEST_TRIPS),
            lambda trip: self.resolver.related_one(trip, rel.RESERVATION_NEIGHBORHOOD),
        )
        return agg.argmax_key(visits)

    def user_total_earnings(self, user):
        return earnings.user_total_earnings(self.related(user, rel.HOST_LISTINGS), self._reservations_of)

    def average_listing_price(self, user):
        prices = [Decimal(l.price) for l in self.related(user, rel.HOST_LISTINGS)]
        if not prices:
            return earnings.ZERO
        return earnings.to_money(agg.average(prices))

    def host_reservations(self, user):
        return self.related(user, rel.HOST_RESERVATIONS)

    def host_guests(self, user):
        return rel.distinct(self.related(user, rel.HOST_GUESTS))

    def host_reviews(self, user):
        return self.related(user, rel.HOST_REVIEWS)

    def guest_reviews(self, user):
        return self.related(user, rel.GUEST_REVIEWS)

    def hosts(self):
        return [u for u in self.snapshot.users if self.is_host(u)]

    def guests(self):
        return [u for u in self.snapshot.users if self.trip_count(u)]

    def top_host(self):
        """Host with the most listings."""
        return agg.argmax(self.hosts(), lambda u: len(self.related(u, rel.HOST_LISTINGS)))

    def most_traveled(self):
        return agg.argmax(self.guests(), self.trip_count)

    # ---------- Listing ----------
    def listing_reviews(self, listing):
        return self.related(listing, rel.LISTING_REVIEWS)

    def listing_guests(self, listing):
        return rel.distinct(self.related(listing, rel.LISTING_GUESTS))

    def average_review_rating(self, listing):
        return float(agg.average([review.rating for review in self.listing_reviews(listing)]))

    def is_booked(self, listing):
        return bool(self._reservations_of(listing))

    def booking_count(self, listing):
        return len(self._reservations_of(listing))

    def listing_total_earnings(self, listing):
        listing = self.snapshot.resolve(listing)
        return earnings.listing_total_earnings(listing, self._reservations_of(listing))

    def most_recent_review(self, listing):
        recent = agg.top_n(self.listing_reviews(listing), _creation_order, 1)
        return recent[0] if recent else None

    def is_available(self, listing, day: date):
        return availability.is_available(self._reservations_of(listing), day)

    def highest_rated_listings(self, threshold=HIGHLY_RATED_THRESHOLD):
        """Reviewed listings whose average rating reaches ``threshold``."""
        return [
            l for l in self.snapshot.listings
            if self.listing_reviews(l) and self.average_review_rating(l) >= threshold
        ]

    def most_expensive_listing(self):
        return agg.argmax(self.snapshot.listings, lambda l: Decimal(l.price))

    def listings_by_city(self, city_name):
        cities = [c for c in self.snapshot.cities if c.name == city_name]
        return [l for city in cities for l in self.city_listings(city)]

    def available_between(self, start: date, end: date):
        return availability.available_between(self.snapshot.listings, self._reservations_of, start, end)

    def top_earners(self, n=TOP_EARNERS_LIMIT):
        return agg.top_n(self.snapshot.listings, self.listing_total_earnings, n)

    # ---------- Reservation ----------
    def duration(self, reservation):
        return earnings.nights(self.snapshot.resolve(reservation))

    def total_cost(self, reservation):
        reservation = self.snapshot.resolve(reservation)
        listing = self.resolver.related_one(reservation, rel.RESERVATION_LISTING)
        return earnings.reservation_cost(reservation, listing)

    def most_recent_reservations(self, limit=RECENT_RESERVATIONS_LIMIT):
        return agg.top_n(self.snapshot.reservations, _creation_order, limit)

    def highest_grossing(self):
        return agg.argmax(self.snapshot.reservations, self.total_cost)

    def reservations_by_month(self, month, year):
        return [
            r for r in self.snapshot.reservations
            if r.checkin.month == month and r.checkin.year == year
        ]

    def current_guests(self, today=None):
        today = today or date.today()
        staying = [r for r in self.snapshot.reservations if availability.covers(r, today)]
        return rel.distinct(self.resolver.related_one(r, rel.RESERVATION_GUEST) for r in staying)

    # ---------- Review ----------
    def five_star_reviews(self):
        return self.reviews_by_rating(5)

    def low_rated_reviews(self):
        return [review for review in self.snapshot.reviews if review.rating <= LOW_RATING_CEILING]

    def most_recent_reviews(self, limit=RECENT_REVIEWS_LIMIT):
        return agg.top_n(self.snapshot.reviews, _creation_order, limit)

    def average_rating(self):
        return float(agg.average([review.rating for review in self.snapshot.reviews]))

    def reviews_by_rating(self, rating):
        return [review for review in self.snapshot.reviews if review.rating == rating]

    def detailed_ratings(self):
        """Number of reviews per rating value."""
        ratings = agg.histogram(review.rating for review in self.snapshot.reviews)
        logger.debug("Rating histogram: %s", ratings)
        return ratings
