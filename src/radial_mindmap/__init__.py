"""Radial mind map: an expanding idea tree laid out on concentric rings."""

from radial_mindmap.core.expansion.controller import (
    ExpansionController,
    ExpansionResult,
    ExpansionStatus,
)
from radial_mindmap.core.layout.radial import compute_layout
from radial_mindmap.core.tree.store import TreeStore
from radial_mindmap.errors import CollaboratorFailure, MalformedTree, PreconditionViolation
from radial_mindmap.protocols import IdeaGeneratorProtocol

__all__ = [
    "CollaboratorFailure",
    "ExpansionController",
    "ExpansionResult",
    "ExpansionStatus",
    "IdeaGeneratorProtocol",
    "MalformedTree",
    "PreconditionViolation",
    "TreeStore",
    "compute_layout",
]
