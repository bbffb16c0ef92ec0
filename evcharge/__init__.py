"""Reservation scheduling and station ranking engine for EV charging."""

__version__ = "0.1.0"
