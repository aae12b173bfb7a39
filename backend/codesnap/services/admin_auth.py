"""
CodeSnap Backend — Admin Authenticator
========================================

What:  Grants the admin capability needed to update or delete pastes.
How:   Two credentials are accepted on every mutating request:
       1. The raw admin password, compared in constant time against the
          single configured secret.
       2. A short-lived capability token previously issued by
          POST /api/admin/verify, so clients need not resend the secret.
Who:   One instance per process, created by create_app() and kept on
       app.state; consulted by PasteService before any mutation.

Token Store:
    In-memory dict token → expiry, pruned on access. Valid for a single
    process (same scope as the rate limiter). Tokens do not survive a
    restart; clients fall back to the password.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional

from codesnap.clock import Clock, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdminToken:
    token: str
    expires_at: datetime


class AdminAuthenticator:
    """
    Verifies admin credentials and issues capability tokens.

    Args:
        admin_password: The configured secret (must be non-empty)
        token_ttl_seconds: Lifetime of issued tokens
        clock: Source of "now" for token expiry
    """

    def __init__(
        self,
        admin_password: str,
        token_ttl_seconds: int = 900,
        clock: Clock = utcnow,
    ):
        if not admin_password:
            raise ValueError("AdminAuthenticator requires a non-empty admin password")
        self._secret = admin_password
        self._ttl = timedelta(seconds=token_ttl_seconds)
        self._clock = clock
        self._tokens: Dict[str, datetime] = {}

    def verify(self, submitted_password: Optional[str]) -> bool:
        """Exact match against the configured secret. Missing/empty → False."""
        if not submitted_password:
            return False
        return secrets.compare_digest(
            submitted_password.encode("utf-8"),
            self._secret.encode("utf-8"),
        )

    def issue_token(self) -> AdminToken:
        """Create a new capability token valid for the configured TTL."""
        self._prune()
        token = secrets.token_urlsafe(32)
        expires_at = self._clock() + self._ttl
        self._tokens[token] = expires_at
        logger.info("Issued admin token (expires %s)", expires_at.isoformat())
        return AdminToken(token=token, expires_at=expires_at)

    def verify_token(self, token: Optional[str]) -> bool:
        """True if `token` was issued by this process and has not expired."""
        if not token:
            return False
        expires_at = self._tokens.get(token)
        if expires_at is None:
            return False
        if expires_at <= self._clock():
            self._tokens.pop(token, None)
            return False
        return True

    def revoke_token(self, token: str) -> None:
        self._tokens.pop(token, None)

    def authorize(
        self,
        password: Optional[str] = None,
        token: Optional[str] = None,
    ) -> bool:
        """True if either credential is valid."""
        return self.verify(password) or self.verify_token(token)

    def _prune(self) -> None:
        now = self._clock()
        stale = [t for t, exp in self._tokens.items() if exp <= now]
        for t in stale:
            del self._tokens[t]
        if stale:
            logger.debug("Pruned %d expired admin token(s)", len(stale))
