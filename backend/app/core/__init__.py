"""
Core module - Logging and token utilities.
"""
from app.core.logging import setup_logging
from app.core.security import (
    generate_id,
    generate_token,
    hash_token,
    tokens_match,
)

__all__ = [
    "setup_logging",
    "generate_id",
    "generate_token",
    "hash_token",
    "tokens_match",
]
