from sqlalchemy import Column, ForeignKey, Index, Integer, Numeric, Text, UniqueConstraint, text

from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata


class AvailabilityBlocks(Base):
    __tablename__ = 'availability_blocks'
    __table_args__ = (
        UniqueConstraint('provider_id', 'date', 'hour'),
        Index('ix_availability_provider_date', 'provider_id', 'date'),
    )

    provider_id = Column(Text, nullable=False)
    date = Column(Text, nullable=False)  # YYYY-MM-DD
    hour = Column(Integer, nullable=False)  # 0..23
    is_available = Column(Integer, nullable=False, server_default=text('1'))
    id = Column(Integer, primary_key=True)
    updated_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))


class ProviderSettings(Base):
    __tablename__ = 'provider_settings'

    provider_id = Column(Text, primary_key=True)
    min_gap_hours = Column(Integer)  # NULL -> configured default
    weeks_to_maintain = Column(Integer)  # NULL -> configured default


class RecurringSchedules(Base):
    __tablename__ = 'recurring_schedules'
    __table_args__ = (
        UniqueConstraint('provider_id', 'day_of_week', 'start_hour'),
        Index('ix_recurring_provider', 'provider_id'),
    )

    provider_id = Column(Text, nullable=False)
    day_of_week = Column(Integer, nullable=False)  # 0 = Monday .. 6 = Sunday
    start_hour = Column(Integer, nullable=False)
    end_hour = Column(Integer, nullable=False)  # exclusive
    id = Column(Integer, primary_key=True)


class Tariffs(Base):
    __tablename__ = 'tariffs'
    __table_args__ = (
        UniqueConstraint('provider_id', 'service_type'),
    )

    provider_id = Column(Text, nullable=False)
    service_type = Column(Text, nullable=False)
    schema_version = Column(Integer, nullable=False, server_default=text('1'))
    config = Column(Text, nullable=False, server_default=text("'{}'"))
    id = Column(Integer, primary_key=True)
    updated_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))


class Offers(Base):
    __tablename__ = 'offers'

    client_id = Column(Text, nullable=False)
    date = Column(Text, nullable=False)
    start_hour = Column(Integer, nullable=False)
    duration_hours = Column(Integer, nullable=False)
    total_price = Column(Numeric(12, 2), nullable=False)
    status = Column(Text, nullable=False, server_default=text("'open'"))
    id = Column(Integer, primary_key=True)
    claimed_provider_id = Column(Text)
    booking_id = Column(ForeignKey('bookings.id', ondelete='SET NULL'))
    notes = Column(Text)
    created_at = Column(Text, nullable=False, server_default=text('CURRENT_TIMESTAMP'))

    candidates = relationship('OfferCandidates', back_populates='offer', order_by='OfferCandidates.id')
    booking = relationship('Bookings', foreign_keys=[booking_id])


class OfferCandidates(Base):
    __tablename__ = 'offer_candidates'
    __table_args__ = (
        UniqueConstraint('offer_id', 'provider_id'),
    )

    offer_id = Column(ForeignKey('offers.id', ondelete='CASCADE'), nullable=False)
    provider_id = Column(Text, nullable=False)
    status = Column(Text, nullable=False, server_default=text("'pending'"))
    id = Column(Integer, primary_key=True)

    offer = relationship('Offers', back_populates='candidates')


class Bookings(Base):
    __tablename__ = 'bookings'
    __table_args__ = (
        Index('ix_bookings_provider_date', 'provider_id', 'date'),
    )

    provider_id = Column(Text, nullable=False)
    client_id = Column(Text, nullable=False)
    date = Column(Text, nullable=False)
    start_hour = Column(Integer, nullable=False)
    duration_hours = Column(Integer, nullable=False)
    status = Column(Text, nullable=False, server_default=text("'pending'"))
    total_price = Column(Numeric(12, 2), nullable=False)
    id = Column(Integer, primary_key=True)
    offer_id = Column(Integer)
    cancel_reason = Column(Text)
    created_at = Column(Text, nullable=False, server_default=text('CURRENT_TIMESTAMP'))
    updated_at = Column(Text, nullable=False, server_default=text('CURRENT_TIMESTAMP'))

    line_items = relationship(
        'BookingLineItems',
        back_populates='booking',
        order_by='BookingLineItems.position',
        cascade='all, delete-orphan',
    )


class BookingLineItems(Base):
    __tablename__ = 'booking_line_items'

    booking_id = Column(ForeignKey('bookings.id', ondelete='CASCADE'), nullable=False)
    position = Column(Integer, nullable=False, server_default=text('0'))
    service_type = Column(Text, nullable=False)
    quantity = Column(Numeric(12, 2), nullable=False)
    unit = Column(Text, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    id = Column(Integer, primary_key=True)
    description = Column(Text)

    booking = relationship('Bookings', back_populates='line_items')
