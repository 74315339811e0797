"""
API Routers module.
"""
from app.routers import auth, health

__all__ = ["auth", "health"]
