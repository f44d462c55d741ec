"""Read access to the rental tables and an immutable in-memory snapshot of them."""

import logging
from collections import defaultdict
from dataclasses import make_dataclass
from decimal import Decimal

from sqlalchemy.orm import Session

import models_sqlalchemy as models
from errors import InvariantViolation

logger = logging.getLogger(__name__)


class EntityStore:
    """Thin query wrapper around a SQLAlchemy session.

    Every fetch orders rows by primary key so callers see a stable iteration order.
    """

    def __init__(self, db: Session):
        self.db = db

    def fetch_all(self, model):
        return self.db.query(model).order_by(model.id).all()

    def fetch_by_id(self, model, entity_id):
        return self.db.query(model).filter(model.id == entity_id).first()

    def fetch_where(self, model, *criteria, **filters):
        query = self.db.query(model)
        if criteria:
            query = query.filter(*criteria)
        if filters:
            query = query.filter_by(**filters)
        return query.order_by(model.id).all()


def _record_type(model):
    columns = [column.key for column in model.__table__.columns]
    return make_dataclass(f"{model.__name__}Record", columns, frozen=True, namespace={"model": model})


# frozen copies of each table's columns; a snapshot never holds session rows
RECORD_TYPES = {
    model: _record_type(model)
    for model in (models.City, models.Neighborhood, models.User,
                  models.Listing, models.Reservation, models.Review)
}


def model_of(entity):
    return getattr(entity, "model", type(entity))


def freeze(row):
    """Copy a row's column values into its immutable record; records pass through."""
    if isinstance(row, tuple(RECORD_TYPES.values())):
        return row
    record_type = RECORD_TYPES[type(row)]
    return record_type(**{name: getattr(row, name) for name in record_type.__dataclass_fields__})


def _index_by_id(rows):
    return {row.id: row for row in rows}


def _children(rows, fk):
    index = defaultdict(list)
    for row in rows:
        index[getattr(row, fk)].append(row)
    return index


class Snapshot:
    """All rental entities copied once into frozen records, indexed by id and by foreign key.

    Built through ``Snapshot.load``; the constructor validates every record and raises
    ``InvariantViolation`` for the first one the analytics could not trust. Later changes
    to the session's rows do not reach the snapshot.
    """

    def __init__(self, cities, neighborhoods, users, listings, reservations, reviews):
        self.cities = [freeze(row) for row in cities]
        self.neighborhoods = [freeze(row) for row in neighborhoods]
        self.users = [freeze(row) for row in users]
        self.listings = [freeze(row) for row in listings]
        self.reservations = [freeze(row) for row in reservations]
        self.reviews = [freeze(row) for row in reviews]

        self.city_by_id = _index_by_id(self.cities)
        self.neighborhood_by_id = _index_by_id(self.neighborhoods)
        self.user_by_id = _index_by_id(self.users)
        self.listing_by_id = _index_by_id(self.listings)
        self.reservation_by_id = _index_by_id(self.reservations)
        self.review_by_id = _index_by_id(self.reviews)
        self._by_model = {
            models.City: self.city_by_id,
            models.Neighborhood: self.neighborhood_by_id,
            models.User: self.user_by_id,
            models.Listing: self.listing_by_id,
            models.Reservation: self.reservation_by_id,
            models.Review: self.review_by_id,
        }

        self.neighborhoods_by_city = _children(self.neighborhoods, "city_id")
        self.listings_by_neighborhood = _children(self.listings, "neighborhood_id")
        self.listings_by_host = _children(self.listings, "host_id")
        self.reservations_by_listing = _children(self.reservations, "listing_id")
        self.trips_by_guest = _children(self.reservations, "guest_id")
        self.reviews_by_reservation = _children(self.reviews, "reservation_id")
        self.reviews_by_guest = _children(self.reviews, "guest_id")

        self._validate()

    @classmethod
    def load(cls, store: EntityStore):
        snapshot = cls(
            store.fetch_all(models.City),
            store.fetch_all(models.Neighborhood),
            store.fetch_all(models.User),
            store.fetch_all(models.Listing),
            store.fetch_all(models.Reservation),
            store.fetch_all(models.Review),
        )
        logger.debug(
            "Loaded snapshot: %d cities, %d neighborhoods, %d users, %d listings, %d reservations, %d reviews",
            len(snapshot.cities), len(snapshot.neighborhoods), len(snapshot.users),
            len(snapshot.listings), len(snapshot.reservations), len(snapshot.reviews),
        )
        return snapshot

    def resolve(self, entity):
        """The snapshot's record for ``entity`` (a row or a record).

        Entities the snapshot has never seen are frozen as they are and relate to nothing.
        """
        record = self._by_model[model_of(entity)].get(entity.id)
        return record if record is not None else freeze(entity)

    def _validate(self):
        for n in self.neighborhoods:
            self._require(n, "city_id", self.city_by_id)

        for listing in self.listings:
            self._require(listing, "neighborhood_id", self.neighborhood_by_id)
            self._require(listing, "host_id", self.user_by_id)
            if listing.price is None or Decimal(listing.price) < 0:
                raise InvariantViolation("Listing", listing.id, f"price must be >= 0, got {listing.price}")

        for r in self.reservations:
            self._require(r, "listing_id", self.listing_by_id)
            self._require(r, "guest_id", self.user_by_id)
            if r.checkin is None or r.checkout is None or r.checkout <= r.checkin:
                raise InvariantViolation(
                    "Reservation", r.id, f"checkout ({r.checkout}) must be after checkin ({r.checkin})"
                )
            if r.status not in models.RESERVATION_STATUSES:
                raise InvariantViolation("Reservation", r.id, f"unknown status {r.status!r}")

        for review in self.reviews:
            self._require(review, "guest_id", self.user_by_id)
            self._require(review, "reservation_id", self.reservation_by_id)
            if review.rating is None or not 1 <= review.rating <= 5:
                raise InvariantViolation("Review", review.id, f"rating must be between 1 and 5, got {review.rating}")
            for field in ("cleanliness_rating", "communication_rating"):
                value = getattr(review, field)
                if value is not None and not 1 <= value <= 5:
                    raise InvariantViolation("Review", review.id, f"{field} must be between 1 and 5, got {value}")

    @staticmethod
    def _require(record, fk, index):
        target = getattr(record, fk)
        if target not in index:
            raise InvariantViolation(model_of(record).__name__, record.id, f"{fk}={target} references a missing row")
