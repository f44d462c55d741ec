class AnalyticsError(Exception):
    """Base class for errors raised by the analytics engine."""


class InvariantViolation(AnalyticsError):
    """Stored data breaks a rule the analytics rely on (dangling FK, bad dates, ...)."""

    def __init__(self, entity, entity_id, message):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id}: {message}")
