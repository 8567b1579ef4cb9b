"""Data models for source parsing."""

from pydantic import BaseModel, Field
from typing import Dict, List, Any, Optional, Tuple
from enum import Enum


class Language(str, Enum):
    """Languages the fact extractor can parse."""

    PYTHON = "python"
    JAVASCRIPT = "javascript"
    TYPESCRIPT = "typescript"
    TSX = "tsx"
    UNKNOWN = "unknown"


class ASTNode(BaseModel):
    """Represents an AST node."""

    node_type: str = Field(description="Tree-sitter node type")
    start_byte: int = Field(description="Start byte position")
    end_byte: int = Field(description="End byte position")
    start_point: Tuple[int, int] = Field(description="Start line, column (0-based)")
    end_point: Tuple[int, int] = Field(description="End line, column (0-based)")
    text: Optional[str] = Field(default=None, description="Node text content")
    children: List["ASTNode"] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def line(self) -> int:
        """1-based line of the node start."""
        return self.start_point[0] + 1

    @property
    def column(self) -> int:
        """1-based column of the node start."""
        return self.start_point[1] + 1

    def child_by_type(self, *node_types: str) -> Optional["ASTNode"]:
        """Return the first direct child whose type is one of ``node_types``."""
        for child in self.children:
            if child.node_type in node_types:
                return child
        return None

    def children_by_type(self, *node_types: str) -> List["ASTNode"]:
        """Return all direct children whose type is one of ``node_types``."""
        return [child for child in self.children if child.node_type in node_types]

    def has_token(self, token: str) -> bool:
        """Check whether an anonymous token (e.g. ``async``) is a direct child."""
        return any(child.node_type == token for child in self.children)
