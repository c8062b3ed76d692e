from sqlalchemy import (
    CheckConstraint,
    Column,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata


class Users(Base):
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True)
    name = Column(Text, nullable=False)
    email = Column(Text, unique=True)
    role = Column(Enum('user', 'admin', name='user_role'), nullable=False, server_default=text("'user'"))
    vehicle_model = Column(Text)
    battery_capacity_kwh = Column(Float)
    is_active = Column(Integer, nullable=False, server_default=text('1'))
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))

    bookings = relationship('Bookings', back_populates='user')


class Stations(Base):
    __tablename__ = 'stations'
    __table_args__ = (
        CheckConstraint('capacity >= 1', name='ck_stations_capacity'),
        CheckConstraint(
            "status IN ('active', 'maintenance', 'inactive', 'deleted')",
            name='ck_stations_status',
        ),
    )

    id = Column(Integer, primary_key=True)
    name = Column(Text, nullable=False)
    description = Column(Text)
    address = Column(Text)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    opening_time = Column(Text, nullable=False, server_default=text("'08:00'"))  # "HH:MM"
    closing_time = Column(Text, nullable=False, server_default=text("'20:00'"))  # "HH:MM"
    capacity = Column(Integer, nullable=False, server_default=text('1'))  # connectors
    rate_per_hour = Column(Float, nullable=False, server_default=text('0'))
    status = Column(Text, nullable=False, server_default=text("'active'"))
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))
    updated_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))

    time_slots = relationship('TimeSlots', back_populates='station')
    bookings = relationship('Bookings', back_populates='station')


class TimeSlots(Base):
    __tablename__ = 'time_slots'
    __table_args__ = (
        UniqueConstraint('station_id', 'date', 'start_time', name='uq_time_slots_station_date_start'),
        CheckConstraint(
            'available_spots >= 0 AND available_spots <= total_spots',
            name='ck_time_slots_capacity',
        ),
        CheckConstraint("status IN ('Available', 'Booked')", name='ck_time_slots_status'),
    )

    id = Column(Integer, primary_key=True)
    station_id = Column(ForeignKey('stations.id', ondelete='CASCADE'), nullable=False)
    date = Column(Text, nullable=False)  # "YYYY-MM-DD"
    start_time = Column(Text, nullable=False)  # "HH:MM"
    end_time = Column(Text, nullable=False)  # "HH:MM"
    total_spots = Column(Integer, nullable=False)
    available_spots = Column(Integer, nullable=False)
    status = Column(Text, nullable=False, server_default=text("'Available'"))
    # 0 = outside the station's current hours; kept so bookings never dangle
    is_active = Column(Integer, nullable=False, server_default=text('1'))
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))
    updated_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))

    station = relationship('Stations', back_populates='time_slots')
    bookings = relationship('Bookings', back_populates='time_slot')


class Bookings(Base):
    __tablename__ = 'bookings'
    __table_args__ = (
        Index('ix_bookings_user_id', 'user_id'),
        Index('ix_bookings_station_id', 'station_id'),
        Index('ix_bookings_status', 'status'),
        CheckConstraint(
            "status IN ('Confirmed', 'Cancelled', 'Checked-in', 'Completed', 'No-show')",
            name='ck_bookings_status',
        ),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(ForeignKey('users.id'), nullable=False)
    station_id = Column(ForeignKey('stations.id'), nullable=False)
    time_slot_id = Column(ForeignKey('time_slots.id'), nullable=False)
    date = Column(Text, nullable=False)  # copy of time_slots.date
    status = Column(Text, nullable=False, server_default=text("'Confirmed'"))
    total_amount = Column(Float, nullable=False, server_default=text('0'))
    advance_amount = Column(Float, nullable=False, server_default=text('0'))
    payment_status = Column(
        Enum('Pending', 'Advance Paid', 'Fully Paid', name='payment_status'),
        nullable=False,
        server_default=text("'Pending'"),
    )
    payment_id = Column(Text)
    cancel_reason = Column(Text)
    created_at = Column(Text, nullable=False, server_default=text('CURRENT_TIMESTAMP'))
    updated_at = Column(Text, nullable=False, server_default=text('CURRENT_TIMESTAMP'))

    user = relationship('Users', back_populates='bookings')
    station = relationship('Stations', back_populates='bookings')
    time_slot = relationship('TimeSlots', back_populates='bookings')

    @property
    def remaining_amount(self) -> float:
        return (self.total_amount or 0) - (self.advance_amount or 0)
