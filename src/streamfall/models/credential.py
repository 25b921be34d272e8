"""Credential and per-provider session models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from streamfall.models.enums import CredentialKind


class Credential(BaseModel):
    """The credential currently used for a provider.

    Attributes:
        provider: Provider name.
        value: Token, API key or client id.
        kind: Whether the user supplied it or it is a builtin fallback.
        last_verified_at: When the credential last passed verification.
    """

    model_config = ConfigDict(frozen=True)

    provider: str
    value: str
    kind: CredentialKind
    last_verified_at: datetime | None = None

    @property
    def masked(self) -> str:
        """Token prefix safe to write to logs."""
        return f"{self.value[:8]}..." if len(self.value) > 8 else "***"


@dataclass
class ProviderSession:
    """Mutable per-provider state owned by the credential store.

    One session exists per provider for the lifetime of the store. The
    fallback index only ever advances (modulo the list length).

    Attributes:
        enabled: Whether the provider may be used at all.
        fallback_index: Position in the builtin fallback list.
        last_request_at: Monotonic time of the last dispatched request.
        last_verified_at: Wall-clock time of the last successful verification.
        refresh_attempted: Whether the one-shot credential refresh ran.
        user_token_suspended: Set when a user token was rotated away from.
    """

    enabled: bool = True
    fallback_index: int = 0
    last_request_at: float = 0.0
    last_verified_at: datetime | None = None
    refresh_attempted: bool = False
    user_token_suspended: bool = False
