"""Money arithmetic for reservations: nights stayed times the listing's nightly price."""

from decimal import ROUND_HALF_UP, Decimal

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value):
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def nights(reservation):
    """Whole days between checkin and checkout."""
    return (reservation.checkout - reservation.checkin).days


def reservation_cost(reservation, listing):
    return to_money(Decimal(listing.price) * nights(reservation))


def listing_total_earnings(listing, reservations):
    return sum((reservation_cost(r, listing) for r in reservations), ZERO)


def user_total_earnings(listings, reservations_of):
    """Earnings across every listing a host owns; ``reservations_of`` maps a listing to its reservations."""
    return sum((listing_total_earnings(l, reservations_of(l)) for l in listings), ZERO)
