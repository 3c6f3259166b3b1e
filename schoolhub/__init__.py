"""
SchoolHub core: leave applications, the BS/AD calendar and attendance.
"""

__version__ = "1.0.0"
