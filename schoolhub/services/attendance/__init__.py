"""Attendance grid and reports."""
