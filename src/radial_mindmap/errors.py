"""Exceptions raised by the mind map core."""


class MindMapError(Exception):
    """Base class for mind map errors."""


class PreconditionViolation(MindMapError):
    """A tree store operation was requested on a node in the wrong state."""


class CollaboratorFailure(MindMapError):
    """The idea-generation service failed, timed out or was unreachable."""

    def __init__(self, node_id: str, message: str) -> None:
        super().__init__(message)
        self.node_id = node_id


class MalformedTree(MindMapError):
    """The node mapping does not form a single tree under the requested root."""
