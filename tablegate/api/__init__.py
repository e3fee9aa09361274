"""
HTTP surface for the table engine.

Routes are thin: they pull path and query parameters off the request, call
one TableEngine verb, and turn the OperationResult into 200 or 204. Error
status codes are decided in one place (`errors.py`).
"""

from .app import create_app

__all__ = ["create_app"]
