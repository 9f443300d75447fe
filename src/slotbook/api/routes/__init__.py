"""Route group exports."""

from . import bookings, eligibility, events, health, recommendations

__all__ = ["bookings", "eligibility", "events", "health", "recommendations"]
