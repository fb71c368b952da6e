"""Booking and availability coordination for a multi-role care platform."""

__version__ = "0.1.0"
