# ABOUTME: Identity resolution seam between reconciliation and the authentication provider.
# ABOUTME: The provider itself lives elsewhere; this only turns its answer into a user id.

from typing import Protocol

from anonymous_carryover.errors import AuthenticationRequired


class IdentityResolver(Protocol):
    """Resolves the currently authenticating subject to a user id."""

    def resolve(self, subject: str | None) -> str:
        """Return the user id for subject.

        Raises:
            AuthenticationRequired: If there is no authenticated subject.
        """
        ...


class SubjectIdentityResolver:
    """Treats the provider's subject claim as the user id."""

    def resolve(self, subject: str | None) -> str:
        if subject is None or not subject.strip():
            raise AuthenticationRequired("Authentication required")
        return subject.strip()
