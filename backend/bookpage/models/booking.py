from sqlalchemy import Column, Date, ForeignKey, Index, Integer, Text, Time, UniqueConstraint, text

from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata

# Booking statuses; "cancelled" frees the slot back up
BOOKING_STATUSES = ("confirmed", "completed", "cancelled", "no_show")


class BookingPages(Base):
    __tablename__ = 'booking_pages'

    slug = Column(Text, nullable=False, unique=True)
    title = Column(Text, nullable=False)
    slot_duration = Column(Integer, nullable=False, server_default=text('30'))
    buffer_minutes = Column(Integer, nullable=False, server_default=text('0'))
    min_notice_hours = Column(Integer, nullable=False, server_default=text('24'))
    max_days_ahead = Column(Integer, nullable=False, server_default=text('30'))
    timezone = Column(Text, nullable=False, server_default=text("'Europe/Paris'"))
    is_active = Column(Integer, nullable=False, server_default=text('1'))
    qualification_fields = Column(Text, nullable=False, server_default=text("'[]'"))
    id = Column(Integer, primary_key=True)
    description = Column(Text)
    brand_color = Column(Text, server_default=text("'#C6FF00'"))
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))
    updated_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))

    availability = relationship('BookingAvailability', back_populates='booking_page', cascade='all, delete-orphan')
    exceptions = relationship('BookingExceptions', back_populates='booking_page', cascade='all, delete-orphan')
    bookings = relationship('Bookings', back_populates='booking_page', cascade='all, delete-orphan')


class BookingAvailability(Base):
    __tablename__ = 'booking_availability'
    __table_args__ = (
        Index('ix_booking_availability_page_day', 'booking_page_id', 'day_of_week'),
    )

    booking_page_id = Column(ForeignKey('booking_pages.id', ondelete='CASCADE'), nullable=False)
    day_of_week = Column(Integer, nullable=False)  # 0=Mon .. 6=Sun
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    is_active = Column(Integer, nullable=False, server_default=text('1'))
    id = Column(Integer, primary_key=True)

    booking_page = relationship('BookingPages', back_populates='availability')


class BookingExceptions(Base):
    __tablename__ = 'booking_exceptions'
    __table_args__ = (
        UniqueConstraint('booking_page_id', 'exception_date'),
    )

    booking_page_id = Column(ForeignKey('booking_pages.id', ondelete='CASCADE'), nullable=False)
    exception_date = Column(Date, nullable=False)
    id = Column(Integer, primary_key=True)
    reason = Column(Text)
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))

    booking_page = relationship('BookingPages', back_populates='exceptions')


class Bookings(Base):
    __tablename__ = 'bookings'
    __table_args__ = (
        # At most one non-cancelled booking per page/date/start. This index is
        # the only arbiter between concurrent reservations.
        Index(
            'uq_bookings_active_slot',
            'booking_page_id', 'date', 'start_time',
            unique=True,
            sqlite_where=text("status != 'cancelled'"),
            postgresql_where=text("status != 'cancelled'"),
        ),
        Index('ix_bookings_page_date', 'booking_page_id', 'date'),
    )

    booking_page_id = Column(ForeignKey('booking_pages.id', ondelete='CASCADE'), nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    status = Column(Text, nullable=False, server_default=text("'confirmed'"))
    prospect_name = Column(Text, nullable=False)
    prospect_email = Column(Text, nullable=False)
    qualification_answers = Column(Text, nullable=False, server_default=text("'{}'"))
    created_at = Column(Text, nullable=False, server_default=text('CURRENT_TIMESTAMP'))
    updated_at = Column(Text, nullable=False, server_default=text('CURRENT_TIMESTAMP'))
    id = Column(Integer, primary_key=True)
    prospect_phone = Column(Text)
    notes = Column(Text)

    booking_page = relationship('BookingPages', back_populates='bookings')
