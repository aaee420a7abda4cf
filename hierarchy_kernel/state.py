"""
Hierarchy Kernel — State Construction
"""

from __future__ import annotations

from typing import Callable

from .constants import ROLE_ID_PREFIX, SEED_ROLE_NAME
from .domain_types import HierarchyState, Role


def create_initial_state(
    id_factory: Callable[..., str],
    seed_role_name: str = SEED_ROLE_NAME,
) -> HierarchyState:
    """Default state used when nothing usable is persisted: one role, no nodes."""
    return HierarchyState(
        roles=[Role(id=id_factory(ROLE_ID_PREFIX, frozenset()), name=seed_role_name)],
        nodes=[],
    )


def create_empty_state() -> HierarchyState:
    """No roles, no nodes."""
    return HierarchyState(roles=[], nodes=[])
