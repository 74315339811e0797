"""
Identifier and token helpers for documents, sessions and magic links.
"""
import hashlib
import secrets


def generate_id() -> str:
    """
    Generate a document id.
    
    Returns:
        24 hexadecimal characters from a cryptographically secure source
    """
    return secrets.token_hex(12)


def generate_token() -> str:
    """Generate an unguessable token for sessions and magic links."""
    return secrets.token_hex(32)


def hash_token(token: str, secret: str) -> str:
    """
    Hash a verification token together with the application secret.
    
    Only the hash is persisted, so a leaked VerificationTokens store
    cannot be replayed as sign-in links.
    
    Args:
        token: Plain token sent by email
        secret: Application secret
        
    Returns:
        Hex-encoded SHA-256 digest
    """
    return hashlib.sha256(f"{token}{secret}".encode("utf-8")).hexdigest()


def tokens_match(stored: str | None, provided: str | None) -> bool:
    """Constant-time comparison of two token strings."""
    if stored is None or provided is None:
        return False
    return secrets.compare_digest(str(stored).encode("utf-8"), str(provided).encode("utf-8"))
