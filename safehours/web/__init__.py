"""
Web dashboard: JSON API over the activity log and compliance engine.
"""
from .server import create_app, find_free_port, main

__all__ = ["create_app", "find_free_port", "main"]
