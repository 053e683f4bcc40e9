"""SQLAlchemy models for the appointment engine."""

from .booking import AppointmentBooking
from .interviewer import Interviewer
from .slot import AppointmentSlot

__all__ = ["AppointmentBooking", "AppointmentSlot", "Interviewer"]
