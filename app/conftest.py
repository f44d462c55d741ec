from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import models_sqlalchemy as models
from api_endpoints import app, get_db
from analytics import RentalAnalytics
from entity_store import EntityStore

# ---------- TEST FIXTURES ----------

# Use in-memory SQLite for test isolation
TEST_DATABASE_URL = "sqlite:///:memory:"

@pytest.fixture(scope="session")
def engine():
    engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
    models.Base.metadata.create_all(bind=engine)
    yield engine
    models.Base.metadata.drop_all(bind=engine)

@pytest.fixture(scope="function")
def db_session(engine):
    """A new DB session for each test."""
    connection = engine.connect()
    transaction = connection.begin()
    Session = sessionmaker(bind=connection)
    session = Session()
    yield session
    session.close()
    transaction.rollback()
    connection.close()

@pytest.fixture(scope="function")
def client(db_session):
    """Override get_db dependency for FastAPI TestClient."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()

@pytest.fixture
def store(db_session):
    return EntityStore(db_session)

@pytest.fixture
def build(db_session):
    return Builder(db_session)

@pytest.fixture
def analytics(store):
    """Analytics over whatever the test has written so far; call it after building data."""
    return lambda: RentalAnalytics(store)

# ---------- TEST DATA HELPERS ----------

class Builder:
    """Writes rows one at a time so ids and created_at follow call order."""

    def __init__(self, db):
        self.db = db

    def _save(self, row):
        self.db.add(row)
        self.db.flush()
        return row

    def city(self, name="NYC", state="NY", country="USA"):
        return self._save(models.City(name=name, state=state, country=country))

    def neighborhood(self, city, name="Fi Di", zip_code="10004"):
        return self._save(models.Neighborhood(name=name, zip_code=zip_code, city_id=city.id))

    def user(self, name="Amanda", email=None):
        return self._save(models.User(name=name, email=email))

    def listing(self, neighborhood, host, price="50.00", title="Beautiful Apartment on Main Street",
                listing_type="private room"):
        return self._save(models.Listing(
            title=title,
            address="123 Main Street",
            listing_type=listing_type,
            price=Decimal(price),
            max_guests=2,
            neighborhood_id=neighborhood.id,
            host_id=host.id,
        ))

    def reservation(self, listing, guest, checkin, checkout, status="confirmed"):
        return self._save(models.Reservation(
            checkin=checkin,
            checkout=checkout,
            guest_count=1,
            status=status,
            listing_id=listing.id,
            guest_id=guest.id,
        ))

    def review(self, reservation, rating, guest=None, description="Nice stay"):
        return self._save(models.Review(
            description=description,
            rating=rating,
            guest_id=(guest or reservation.guest).id,
            reservation_id=reservation.id,
        ))

@pytest.fixture
def cities_scenario(build):
    """NYC: 2 listings, 3 reservations rated 5/4/5. SF: 1 listing, 1 reservation rated 4. Chicago: 1 idle listing."""
    nyc = build.city("NYC")
    sf = build.city("San Francisco", state="CA")
    chicago = build.city("Chicago", state="IL")
    manhattan = build.neighborhood(nyc, "Manhattan")
    mission = build.neighborhood(sf, "Mission", zip_code="94103")
    loop = build.neighborhood(chicago, "Loop", zip_code="60601")
    host1, host2, host3 = build.user("Host1"), build.user("Host2"), build.user("Host3")
    guest = build.user("Guest")

    nyc_room = build.listing(manhattan, host1, "100.00", title="NYC Room 1")
    nyc_apartment = build.listing(manhattan, host1, "200.00", title="NYC Apartment")
    sf_room = build.listing(mission, host2, "150.00", title="SF Room")
    chicago_room = build.listing(loop, host3, "80.00", title="Chicago Room")

    r1 = build.reservation(nyc_room, guest, date(2024, 3, 1), date(2024, 3, 4))
    r2 = build.reservation(nyc_apartment, guest, date(2024, 3, 6), date(2024, 3, 9))
    r3 = build.reservation(nyc_room, guest, date(2024, 3, 11), date(2024, 3, 13))
    r4 = build.reservation(sf_room, guest, date(2024, 2, 20), date(2024, 2, 22))

    build.review(r1, 5)
    build.review(r2, 4)
    build.review(r3, 5)
    build.review(r4, 4)

    return {
        "nyc": nyc, "sf": sf, "chicago": chicago,
        "manhattan": manhattan, "mission": mission, "loop": loop,
        "host1": host1, "host2": host2, "host3": host3, "guest": guest,
        "nyc_room": nyc_room, "nyc_apartment": nyc_apartment,
        "sf_room": sf_room, "chicago_room": chicago_room,
        "reservations": [r1, r2, r3, r4],
    }
