"""
Engine error kinds.

Raised by the services layer; mapped to HTTP responses in main.py.
"""


class BookingEngineError(Exception):
    """Base class for all engine errors."""

    status_code = 400

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"detail": self.message, "error": type(self).__name__}


class InvalidRequest(BookingEngineError):
    """Malformed date/hour/duration or negative quantity."""

    status_code = 400


class NotFound(BookingEngineError):
    status_code = 404


class SlotConflict(BookingEngineError):
    """
    Lost race on a slot claim, or the interval is no longer bookable.

    alternatives: start hours that are valid right now for the same
    provider/day, so the caller can re-prompt without another read.
    """

    status_code = 409

    def __init__(self, message: str = "", alternatives: list[int] | None = None):
        super().__init__(message)
        self.alternatives = alternatives or []

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["alternatives"] = self.alternatives
        return data


class InvalidTransition(BookingEngineError):
    """Status change not allowed from the booking's current status."""

    status_code = 409

    def __init__(self, from_status: str, to_status: str, entity: str = "booking"):
        super().__init__(f"Cannot move {entity} from '{from_status}' to '{to_status}'")
        self.from_status = from_status
        self.to_status = to_status

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["from_status"] = self.from_status
        data["to_status"] = self.to_status
        return data


class UnconfiguredTariff(BookingEngineError):
    """A quote touches attribute combinations with no positive price."""

    status_code = 422

    def __init__(self, missing: list[str]):
        super().__init__("Tariff is not configured for: " + ", ".join(missing))
        self.missing = missing

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["missing"] = self.missing
        return data


class StoreUnavailable(BookingEngineError):
    """Transient I/O failure of the availability/booking store."""

    status_code = 503
