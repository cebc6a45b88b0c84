"""Internship Matcher: semantic job-intern matching service."""

__app_name__ = "Internship Matcher"
__version__ = "0.1.0"
