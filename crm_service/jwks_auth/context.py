"""Identity produced after a bearer token has been verified."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AuthenticatedIdentity:
    """
    Who made the request, as established by a verified token.

    Created per request and discarded at the end of it; never persisted.
    Authorization is decided downstream, so no permissions are granted here.
    """

    subject: str
    """The token's ``sub`` claim (provider user id)."""

    permissions: tuple[str, ...] = ()
    """Always empty at this layer."""

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serializable dict."""
        return {
            "subject": self.subject,
            "permissions": list(self.permissions),
        }
