"""AI Provider Protocol."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class AIProvider(Protocol):
    """Protocol that all AI providers must satisfy."""

    name: str
    model: str

    def is_available(self) -> bool: ...
    def structured(
        self,
        system: str,
        user: str,
        schema: dict,
        max_tokens: int = 2000,
    ) -> dict: ...
