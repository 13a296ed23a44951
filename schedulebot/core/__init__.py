"""Shared utilities for schedulebot (dates, configuration)."""
