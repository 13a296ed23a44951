"""Compilation pipeline for schedulebot."""
