"""
Token lifecycle service for Bifrost.

The gateway's authentication middleware talks to this facade: it issues
tokens after a successful login, validates them on every request,
renews them before they lapse and revokes them on logout. The service
only sees the repository contract, never a concrete backend.
"""

import logging
from datetime import timedelta
from typing import Optional

from .config import TokenConfig
from ..tokenstore.store import Token, TokenCollection, TokenRepository, new_token
from ..types.errors import TokenExpiredError, TokenNotFoundError


logger = logging.getLogger(__name__)


class TokenService:
    """Issue, validate, renew and revoke tokens on one repository."""

    def __init__(self, repository: TokenRepository, config: Optional[TokenConfig] = None):
        self.repository = repository
        self.config = config or TokenConfig()

    @property
    def timeout(self) -> timedelta:
        return self.config.timeout

    def issue(self, owner_id: str, source: str = "", client_address: str = "") -> Token:
        """
        Create and persist a token for an authenticated consumer.

        Raises:
            DuplicateKeyError: If the generated id collides
            StorageError: If the backend is unavailable
        """
        token = new_token(owner_id, source=source, client_address=client_address, timeout=self.timeout)
        self.repository.insert(token)
        logger.info(f"Issued token {token.id} to owner {owner_id}")
        return token

    def validate(self, token_id: str) -> Optional[Token]:
        """Return the token if it exists and has not expired, else None."""
        token = self.repository.get(token_id)
        if token is None or not token.is_valid():
            return None
        return token

    def renew(self, token_id: str) -> Token:
        """
        Extend a live token by the configured timeout and persist it.

        Raises:
            TokenNotFoundError: If the token does not exist
            TokenExpiredError: If the token has already expired
        """
        token = self.repository.get(token_id)
        if token is None:
            raise TokenNotFoundError(token_id)
        if not token.is_valid():
            raise TokenExpiredError(token_id)

        token.renew(self.timeout)
        self.repository.update(token, refresh_ttl=True)
        logger.debug(f"Renewed token {token_id} until {token.expires_at.isoformat()}")
        return token

    def revoke(self, token_id: str) -> None:
        """Delete a single token."""
        self.repository.delete(token_id)
        logger.info(f"Revoked token {token_id}")

    def revoke_all(self, owner_id: str) -> None:
        """Delete every token of an owner, e.g. on logout-everywhere."""
        self.repository.delete_by_owner(owner_id)
        logger.info(f"Revoked all tokens of owner {owner_id}")

    def list_tokens(self, owner_id: str) -> TokenCollection:
        """List every stored token of an owner, expired ones included."""
        return TokenCollection(tokens=self.repository.get_by_owner(owner_id))
