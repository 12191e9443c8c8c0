"""Shared configuration classes for recordsync.

This module defines configuration classes used by both client and server components.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ServerConfig:
    """Configuration for connecting to a recordsync server.

    Exactly one of ``api_key`` and ``token`` must be set.

    Attributes:
        server_url: Base URL of the server (e.g., "https://sync.example.com").
        api_key: Static API key sent as ``x-api-key``.
        token: Bearer token sent as ``Authorization: Bearer <token>``.
        timeout: Request/connection timeout in seconds.
        verify_ssl: Whether to verify SSL certificates (default True).
    """

    server_url: str
    api_key: str | None = None
    token: str | None = None
    timeout: float = 30.0
    verify_ssl: bool = True

    def __post_init__(self) -> None:
        """Normalize server URL and check credentials."""
        self.server_url = self.server_url.rstrip("/")
        if bool(self.api_key) == bool(self.token):
            raise ValueError("Exactly one of api_key or token must be provided")

    @property
    def auth_headers(self) -> dict[str, str]:
        """Authentication headers for every request."""
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {"x-api-key": str(self.api_key)}

    @property
    def auth_method(self) -> str:
        """Human-readable authentication method."""
        return "bearer token" if self.token else "API key"

    @property
    def is_secure(self) -> bool:
        """Check if using HTTPS.

        Returns:
            True if server uses HTTPS.
        """
        return self.server_url.startswith("https://")
