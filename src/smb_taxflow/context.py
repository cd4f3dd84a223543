# SMB TaxFlow - GST, TDS & Cash-Flow toolkit for SMBs
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Session context for SMB TaxFlow.

The identity collaborator supplies the current user and the organization /
CA-client selection for the session. Instead of reading that selection
from ambient storage, it is captured once in a SessionContext and passed
explicitly to the services that need it.

The context is also responsible for user scoping: every record carries
the ``user_id`` of its owner, and ``SessionContext.scope`` keeps only the
records visible to the session.
"""

from collections.abc import Iterable
from dataclasses import dataclass, replace
from typing import Optional, TypeVar

R = TypeVar("R")


@dataclass(frozen=True)
class SessionContext:
    """
    Process-wide selection state with session lifetime.

    Attributes
    ----------
    user_id:
        Authenticated user whose records are visible.
    organization_id:
        Currently selected organization, if any (shown in report headers).
    ca_client_id:
        For chartered accountants: the client currently being worked on.
        When set, records are scoped to this client's user id instead of
        the accountant's own.
    business_name:
        Display name of the business (used in report headers).
    """

    user_id: str
    organization_id: Optional[str] = None
    ca_client_id: Optional[str] = None
    business_name: str = ""

    @property
    def effective_user_id(self) -> str:
        """User id whose records are in scope."""
        return self.ca_client_id or self.user_id

    def switch_client(self, ca_client_id: Optional[str]) -> "SessionContext":
        """Return a new context with another CA client selected (None clears)."""
        return replace(self, ca_client_id=ca_client_id)

    def scope(self, records: Iterable[R]) -> list[R]:
        """Keep only records owned by the effective user."""
        owner = self.effective_user_id
        return [r for r in records if r.user_id == owner]
