from .entities import Base, Bookings, Stations, TimeSlots, Users, metadata

__all__ = ["Base", "metadata", "Users", "Stations", "TimeSlots", "Bookings"]
