"""Date-conflict checks. Stays are half-open intervals: [checkin, checkout)."""


def covers(reservation, day):
    return reservation.checkin <= day < reservation.checkout


def overlaps(reservation, start, end):
    return reservation.checkin < end and reservation.checkout > start


def is_available(reservations, day):
    return not any(covers(r, day) for r in reservations)


def available_between(listings, reservations_of, start, end):
    """Listings with no reservation overlapping [start, end)."""
    if end <= start:
        raise ValueError(f"end ({end}) must be after start ({start})")
    return [
        listing for listing in listings
        if not any(overlaps(r, start, end) for r in reservations_of(listing))
    ]
