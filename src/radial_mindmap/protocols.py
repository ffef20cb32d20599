"""Protocols for dependency injection in the mind map core."""

from collections.abc import Sequence
from typing import Protocol, runtime_checkable


@runtime_checkable
class IdeaGeneratorProtocol(Protocol):
    """Protocol for services that turn a concept into related sub-ideas."""

    async def generate(self, concept: str, context_path: Sequence[str]) -> list[str]:
        """Return short idea strings in generation order.

        ``context_path`` holds ancestor texts from the root down to the
        concept's parent and is empty for the seed topic. An empty list is a
        valid answer; transport or service errors are raised.
        """
        ...
