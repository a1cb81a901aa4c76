"""
SafeHours: duty-time compliance tracking for flight instructors.
"""
__version__ = "0.1.0"
