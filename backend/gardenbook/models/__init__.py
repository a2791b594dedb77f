from .generated import (
    Base,
    metadata,
    AvailabilityBlocks,
    Bookings,
    BookingLineItems,
    OfferCandidates,
    Offers,
    ProviderSettings,
    RecurringSchedules,
    Tariffs,
)

__all__ = [
    "Base",
    "metadata",
    "AvailabilityBlocks",
    "Bookings",
    "BookingLineItems",
    "OfferCandidates",
    "Offers",
    "ProviderSettings",
    "RecurringSchedules",
    "Tariffs",
]
