"""
asgi.py -- ASGI entry point for authgate.

Run with:  uvicorn asgi:app --reload

Configuration comes from the environment / .env (see core/config.py).
At minimum set WEB_API_KEY and either GOOGLE_APPLICATION_CREDENTIALS or
Application Default Credentials.
"""

from api.main import app

__all__ = ["app"]
