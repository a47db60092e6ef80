"""PKCE (RFC 7636) verification. Only the S256 method is supported."""

import secrets

from authlib.oauth2.rfc7636 import create_s256_code_challenge

from fastoauth.errors import InvalidGrantError


def verify_code_challenge(code_verifier: str, code_challenge: str) -> bool:
    """Return True when ``code_challenge`` is the S256 transform of the verifier."""
    if not code_verifier or not code_challenge:
        return False
    expected = create_s256_code_challenge(code_verifier)
    return secrets.compare_digest(expected.encode(), code_challenge.encode())


def check_code_verifier(code_verifier: str, code_challenge: str) -> None:
    if not verify_code_challenge(code_verifier, code_challenge):
        raise InvalidGrantError("code_verifier does not match the challenge")
