"""Pydantic schemas for the calendar, leave, student, notification and attendance models."""
