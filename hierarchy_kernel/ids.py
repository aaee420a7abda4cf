"""
Hierarchy Kernel — Identifier Factories

Both factories are callables: factory(prefix, taken) -> new id.
`taken` is the set of ids already in use; the returned id is never in it.
"""

from __future__ import annotations

import random
import string
from typing import AbstractSet, Optional

from .constants import ID_SUFFIX_LENGTH

_BASE36 = string.digits + string.ascii_lowercase


class RandomIdFactory:
    """
    Opaque ids of the form ``<prefix>_<suffix>``, suffix base36.

    Uses a local random.Random instance; pass a seed for reproducible ids.
    """

    def __init__(
        self,
        length: int = ID_SUFFIX_LENGTH,
        seed: Optional[int] = None,
    ) -> None:
        self._length = length
        self._rng = random.Random(seed)

    def __call__(self, prefix: str, taken: AbstractSet[str] = frozenset()) -> str:
        while True:
            suffix = "".join(
                self._rng.choice(_BASE36) for _ in range(self._length)
            )
            candidate = f"{prefix}_{suffix}"
            if candidate not in taken:
                return candidate


class SequentialIdFactory:
    """Deterministic ids: r1, r2, ... / n1, n2, ... (one counter per prefix)."""

    def __init__(self) -> None:
        self._counters: dict[str, int] = {}

    def __call__(self, prefix: str, taken: AbstractSet[str] = frozenset()) -> str:
        n = self._counters.get(prefix, 0)
        while True:
            n += 1
            candidate = f"{prefix}{n}"
            if candidate not in taken:
                self._counters[prefix] = n
                return candidate
