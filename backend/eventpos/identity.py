# Overview: Acting-user value object handed in by the identity provider.

from __future__ import annotations

from dataclasses import dataclass


ROLE_ADMIN = "admin"
ROLE_CASHIER = "cashier"
ROLE_SELLER = "seller"
ROLE_AUDITOR = "auditor"
ROLE_READONLY = "readonly"
VALID_ROLES = {ROLE_ADMIN, ROLE_CASHIER, ROLE_SELLER, ROLE_AUDITOR, ROLE_READONLY}


@dataclass(frozen=True)
class Actor:
    """
    The user performing a mutating call.

    The ledger trusts this identity as given; authentication and role
    checks belong to the caller.
    """
    id: str
    name: str
    role: str = ROLE_CASHIER

    def __post_init__(self):
        if not self.id:
            raise ValueError("Actor id is required")
        if self.role not in VALID_ROLES:
            raise ValueError(f"Unknown role '{self.role}'")
