"""
asgi.py -- ASGI entry point for DevDash.

Exposes the FastAPI application assembled in api/main.py to ASGI servers.

Run with:  uvicorn asgi:app --reload
"""

from api.main import app

__all__ = ["app"]
