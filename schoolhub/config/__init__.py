"""
Configuration package for the school management core.

Environment settings for logging, the document store, the calendar
dataset and the leave workflow.
"""

from schoolhub.config.settings import Settings, get_settings, get_test_settings

__all__ = ['Settings', 'get_settings', 'get_test_settings']
