"""Grouping, averaging and ranking primitives shared by every analytics query.

All functions are pure and keep the iteration order of their input: groups appear
in the order their first member was seen, and ``argmax``/``top_n`` break ties in
favour of whatever came first.
"""

from collections import Counter


def group_by(items, key_fn):
    groups = {}
    for item in items:
        groups.setdefault(key_fn(item), []).append(item)
    return groups


def group_count(items, key_fn):
    return {key: len(members) for key, members in group_by(items, key_fn).items()}


def group_sum(items, key_fn, value_fn, start=0):
    return {
        key: sum((value_fn(m) for m in members), start)
        for key, members in group_by(items, key_fn).items()
    }


def group_average(items, key_fn, value_fn):
    """Average of ``value_fn`` per group. Groups only exist when they have members."""
    return {
        key: average([value_fn(m) for m in members])
        for key, members in group_by(items, key_fn).items()
    }


def average(values):
    """Mean of ``values``; 0 for an empty collection."""
    values = list(values)
    if not values:
        return 0
    return sum(values) / len(values)


def argmax(candidates, metric_fn):
    """Candidate with the greatest metric, or None when there are no candidates."""
    best = None
    best_value = None
    for candidate in candidates:
        value = metric_fn(candidate)
        if best is None or value > best_value:
            best, best_value = candidate, value
    return best


def argmax_key(mapping):
    """Key of ``mapping`` holding the greatest value."""
    return argmax(mapping, mapping.__getitem__)


def top_n(items, metric_fn, n):
    """The ``n`` items with the highest metric, highest first.

    The metric is computed once per item; equal metrics keep their input order.
    """
    if n < 0:
        raise ValueError(f"n must be >= 0, got {n}")
    scored = [(metric_fn(item), item) for item in items]
    # list.sort stays stable with reverse=True
    scored.sort(key=lambda entry: entry[0], reverse=True)
    return [item for _, item in scored[:n]]


def histogram(values):
    return dict(Counter(values))
