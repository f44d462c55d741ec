from datetime import date
from decimal import Decimal

import models_sqlalchemy as models

# ---------- HAPPY PATH TESTS ----------

def test_city_rankings(client, cities_scenario):
    nyc_id = cities_scenario["nyc"].id
    for path in ["/cities/most-reservations", "/cities/biggest-host", "/cities/highest-rated", "/cities/most-listings"]:
        r = client.get(path)
        assert r.status_code == 200
        assert r.json()["id"] == nyc_id
        assert r.json()["name"] == "NYC"

def test_city_neighborhoods_and_listings(client, cities_scenario):
    nyc_id = cities_scenario["nyc"].id
    r = client.get(f"/cities/{nyc_id}/neighborhoods")
    assert r.status_code == 200
    assert [n["name"] for n in r.json()] == ["Manhattan"]

    r2 = client.get(f"/cities/{nyc_id}/listings")
    assert r2.status_code == 200
    assert [l["title"] for l in r2.json()] == ["NYC Room 1", "NYC Apartment"]

    r3 = client.get("/cities/by-name/San Francisco/listings")
    assert r3.status_code == 200
    assert [l["title"] for l in r3.json()] == ["SF Room"]

def test_neighborhood_endpoints(client, cities_scenario):
    manhattan_id = cities_scenario["manhattan"].id
    r = client.get(f"/neighborhoods/{manhattan_id}/most-popular-listing")
    assert r.status_code == 200
    assert r.json()["id"] == cities_scenario["nyc_room"].id

    r2 = client.get(f"/neighborhoods/{manhattan_id}/average-price")
    assert r2.status_code == 200
    assert Decimal(str(r2.json()["average_price"])) == Decimal("150.00")

    # 3*100 + 3*200 + 2*100
    r3 = client.get(f"/neighborhoods/{manhattan_id}/earnings")
    assert Decimal(str(r3.json()["total_earnings"])) == Decimal("1100.00")

    assert client.get("/neighborhoods/highest-earner").json()["id"] == manhattan_id
    # Manhattan and Mission both average 150
    assert client.get("/neighborhoods/most-expensive").json()["id"] in {manhattan_id, cities_scenario["mission"].id}

def test_user_endpoints(client, cities_scenario):
    guest_id = cities_scenario["guest"].id
    host1_id = cities_scenario["host1"].id

    r = client.get(f"/users/{guest_id}/top-destinations")
    assert r.status_code == 200
    assert [c["name"] for c in r.json()["cities"]] == ["NYC", "San Francisco"]

    r2 = client.get(f"/users/{guest_id}/favorite-neighborhood")
    assert r2.json()["name"] == "Manhattan"

    r3 = client.get(f"/users/{host1_id}/earnings")
    assert Decimal(str(r3.json()["total_earnings"])) == Decimal("1100.00")

    r4 = client.get(f"/users/{host1_id}/guests")
    assert [u["id"] for u in r4.json()] == [guest_id]

    assert client.get("/users/top-host").json()["id"] == host1_id
    assert client.get("/users/most-traveled").json()["id"] == guest_id
    assert {u["name"] for u in client.get("/users/hosts").json()} == {"Host1", "Host2", "Host3"}

def test_listing_endpoints(client, cities_scenario):
    nyc_room_id = cities_scenario["nyc_room"].id

    r = client.get("/listings/top-earners")
    assert r.status_code == 200
    assert [l["title"] for l in r.json()] == ["NYC Apartment", "NYC Room 1", "SF Room"]
    assert len(client.get("/listings/top-earners?n=1").json()) == 1

    r2 = client.get(f"/listings/{nyc_room_id}/earnings")
    assert Decimal(str(r2.json()["total_earnings"])) == Decimal("500.00")

    r3 = client.get(f"/listings/{nyc_room_id}/availability", params={"on": "2024-03-04"})
    assert r3.status_code == 200
    assert r3.json()["available"] is True
    r4 = client.get(f"/listings/{nyc_room_id}/availability", params={"on": "2024-03-03"})
    assert r4.json()["available"] is False

    r5 = client.get(f"/listings/{nyc_room_id}/average-rating")
    assert r5.json()["average_rating"] == 5.0

    r6 = client.get(f"/listings/{nyc_room_id}/most-recent-review")
    assert r6.json()["rating"] == 5

    assert client.get("/listings/most-expensive").json()["title"] == "NYC Apartment"
    assert len(client.get("/listings/highest-rated").json()) == 3

def test_listings_available_between(client, cities_scenario):
    r = client.get("/listings/available", params={"start": "2024-03-03", "end": "2024-03-07"})
    assert r.status_code == 200
    assert [l["title"] for l in r.json()] == ["SF Room", "Chicago Room"]

def test_reservation_endpoints(client, cities_scenario):
    r1, r2, r3, r4 = cities_scenario["reservations"]
    r = client.get(f"/reservations/{r2.id}/cost")
    assert r.status_code == 200
    assert r.json()["duration"] == 3
    assert Decimal(str(r.json()["total_cost"])) == Decimal("600.00")

    recent = client.get("/reservations/recent", params={"limit": 2}).json()
    assert [res["id"] for res in recent] == [r4.id, r3.id]
    assert len(client.get("/reservations/recent").json()) == 4

    assert client.get("/reservations/highest-grossing").json()["id"] == r2.id

    by_month = client.get("/reservations/by-month", params={"month": 2, "year": 2024}).json()
    assert [res["id"] for res in by_month] == [r4.id]

    guests = client.get("/reservations/current-guests", params={"on": "2024-03-07"}).json()
    assert [g["name"] for g in guests] == ["Guest"]

def test_review_endpoints(client, cities_scenario):
    r = client.get("/reviews/average-rating")
    assert r.status_code == 200
    assert r.json()["average_rating"] == 4.5

    r2 = client.get("/reviews/ratings")
    assert r2.json()["ratings"] == {"5": 2, "4": 2}

    assert len(client.get("/reviews/recent").json()) == 4
    assert len(client.get("/reviews/recent?limit=1").json()) == 1
    assert [rv["rating"] for rv in client.get("/reviews/by-rating/5").json()] == [5, 5]

    r3 = client.get("/reviews/five-star")
    assert r3.status_code == 200
    assert [rv["rating"] for rv in r3.json()] == [5, 5]
    assert client.get("/reviews/low-rated").json() == []

def test_per_entity_detail_endpoints(client, cities_scenario):
    s = cities_scenario
    nyc_room_id, guest_id = s["nyc_room"].id, s["guest"].id

    r = client.get(f"/listings/{nyc_room_id}/reviews")
    assert r.status_code == 200
    assert [rv["rating"] for rv in r.json()] == [5, 5]

    r2 = client.get(f"/listings/{nyc_room_id}/guests")
    assert [u["id"] for u in r2.json()] == [guest_id]

    r3 = client.get(f"/listings/{nyc_room_id}/booking-count")
    assert r3.json() == {"entity_id": nyc_room_id, "count": 2}
    assert client.get(f"/listings/{s['chicago_room'].id}/booking-count").json()["count"] == 0

    r4 = client.get(f"/neighborhoods/{s['manhattan'].id}/reservation-count")
    assert r4.json()["count"] == 3

    r5 = client.get(f"/users/{s['host1'].id}/host-reviews")
    assert r5.status_code == 200
    assert sorted(rv["rating"] for rv in r5.json()) == [4, 5, 5]
    assert client.get(f"/users/{guest_id}/host-reviews").json() == []

    assert [u["name"] for u in client.get("/users/guests").json()] == ["Guest"]

def test_low_rated_reviews_endpoint(client, build):
    city = build.city()
    host, guest = build.user("Host"), build.user("Guest")
    listing = build.listing(build.neighborhood(city), host)
    for rating in (1, 3, 2):
        build.review(build.reservation(listing, guest, date(2024, 1, 1), date(2024, 1, 2)), rating)
    assert [rv["rating"] for rv in client.get("/reviews/low-rated").json()] == [1, 2]

# ---------- EDGE CASE TESTS ----------

def test_rankings_on_empty_database(client):
    for path in ["/cities/most-reservations", "/cities/highest-rated", "/neighborhoods/highest-earner",
                 "/listings/most-expensive", "/reservations/highest-grossing", "/users/top-host"]:
        r = client.get(path)
        assert r.status_code == 200
        assert r.json() is None
    assert client.get("/listings/top-earners").json() == []
    assert client.get("/reviews/average-rating").json()["average_rating"] == 0
    assert client.get("/reviews/ratings").json()["ratings"] == {}

def test_listing_without_reservations(client, build):
    city = build.city()
    host = build.user("Host")
    listing = build.listing(build.neighborhood(city), host)
    r = client.get(f"/listings/{listing.id}/earnings")
    assert Decimal(str(r.json()["total_earnings"])) == 0
    r2 = client.get(f"/listings/{listing.id}/availability", params={"on": "2031-01-01"})
    assert r2.json()["available"] is True
    assert client.get(f"/listings/{listing.id}/most-recent-review").json() is None

def test_user_without_trips(client, build):
    user = build.user("Homebody")
    r = client.get(f"/users/{user.id}/top-destinations")
    assert r.status_code == 200
    assert r.json()["cities"] == []
    assert client.get(f"/users/{user.id}/favorite-neighborhood").json() is None

def test_nonexistent_entities(client):
    assert client.get("/cities/999/listings").status_code == 404
    assert client.get("/cities/by-name/Atlantis/listings").status_code == 404
    assert client.get("/neighborhoods/999/average-price").status_code == 404
    r = client.get("/users/999/earnings")
    assert r.status_code == 404
    assert "User not found" in r.text
    assert client.get("/listings/999/earnings").status_code == 404
    assert client.get("/reservations/999/cost").status_code == 404
    for path in ["/listings/999/reviews", "/listings/999/guests", "/listings/999/booking-count",
                 "/neighborhoods/999/reservation-count", "/users/999/host-reviews"]:
        assert client.get(path).status_code == 404

def test_available_rejects_inverted_range(client):
    r = client.get("/listings/available", params={"start": "2024-03-07", "end": "2024-03-03"})
    assert r.status_code == 400
    assert "end must be after start" in r.text

def test_invalid_query_parameters(client):
    assert client.get("/reservations/recent", params={"limit": -1}).status_code == 422
    assert client.get("/reservations/by-month", params={"month": 13, "year": 2024}).status_code == 422
    assert client.get("/reviews/by-rating/9").status_code == 400

def test_inconsistent_data_is_reported(client, build):
    city = build.city()
    host, guest = build.user("Host"), build.user("Guest")
    listing = build.listing(build.neighborhood(city), host)
    build.reservation(listing, guest, date(2024, 1, 10), date(2024, 1, 5))
    r = client.get("/cities/most-reservations")
    assert r.status_code == 500
    assert "Inconsistent data" in r.json()["detail"]

def test_orphaned_review_is_reported(client, build, db_session):
    guest = build.user("Guest")
    db_session.add(models.Review(rating=4, guest_id=guest.id, reservation_id=999))
    db_session.flush()
    r = client.get("/reviews/average-rating")
    assert r.status_code == 500
    assert "reservation_id=999" in r.json()["detail"]

# ---------- END OF TEST SUITE ----------
