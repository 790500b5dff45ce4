"""PKCE (RFC 7636) helpers shared by the OAuth platform clients."""
import base64
import hashlib
import secrets
import uuid


def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def generate_code_verifier() -> str:
    # 32 random bytes -> 43 url-safe characters, the RFC minimum length
    return _b64url(secrets.token_bytes(32))


def code_challenge_s256(code_verifier: str) -> str:
    return _b64url(hashlib.sha256(code_verifier.encode("ascii")).digest())


def generate_state() -> str:
    return str(uuid.uuid4())
