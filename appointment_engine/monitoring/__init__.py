"""Metrics for the appointment engine."""
