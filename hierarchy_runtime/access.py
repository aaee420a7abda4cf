"""
Identity and access control.

The Identity Provider (credential service) supplies at session start an
object with at least a ``role`` string. A missing identity is fatal for the
org-chart view: callers must redirect to authentication instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from hierarchy_kernel.constants import PRIVILEGED_ROLE


class IdentityRequiredError(Exception):
    """Raised when no usable identity is available for a session."""

    def __init__(self, detail: str = "No identity supplied") -> None:
        self.detail = detail
        super().__init__(f"Authentication required: {detail}")


@dataclass(frozen=True)
class Identity:
    """The current actor, as reported by the Identity Provider."""

    role: str
    user_id: str = ""
    username: str = ""


def identity_from_mapping(obj: Optional[Mapping[str, Any]]) -> Identity:
    """
    Build an Identity from a provider payload such as
    ``{"id": 3, "username": "priya", "role": "admin"}``.
    """
    if obj is None:
        raise IdentityRequiredError()
    if not isinstance(obj, Mapping):
        raise IdentityRequiredError(
            f"identity must be an object, got {type(obj).__name__}"
        )
    role = obj.get("role")
    if not isinstance(role, str) or not role.strip():
        raise IdentityRequiredError("identity has no role")
    user_id = obj.get("id", obj.get("user_id", ""))
    return Identity(
        role=role,
        user_id="" if user_id is None else str(user_id),
        username=str(obj.get("username") or ""),
    )


def is_privileged(identity: Identity, privileged_role: str = PRIVILEGED_ROLE) -> bool:
    """Exact match against the privileged role value."""
    return identity.role == privileged_role
