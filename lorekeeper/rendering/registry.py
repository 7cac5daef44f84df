"""
Block renderer registry for Lorekeeper.

This module maps block type names to the data model their payload must satisfy
and the function that renders it. Lookups for unregistered types return None;
the renderer turns that into the unsupported-block placeholder.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Type

from pydantic import BaseModel


@dataclass
class BlockType:
    """
    Registration of one renderable block variant.
    """
    name: str
    description: str
    data_model: Type[BaseModel]
    render: Callable[..., Any]


class BlockRendererRegistry:
    """
    Registry of renderable block types.
    """

    def __init__(self):
        """Initialize an empty registry."""
        self._types: Dict[str, BlockType] = {}

    def register(self, block_type: BlockType) -> None:
        """
        Register a block type, replacing any previous registration of the same name.

        Args:
            block_type: The block type registration
        """
        self._types[block_type.name] = block_type

    def get(self, name: str) -> Optional[BlockType]:
        """
        Get a block type registration by name.

        Args:
            name: The block type name

        Returns:
            The registration, or None if the type is not recognized
        """
        return self._types.get(name)

    def list_types(self) -> List[str]:
        return list(self._types.keys())

    def copy(self) -> "BlockRendererRegistry":
        """Return an independent registry with the same registrations."""
        clone = BlockRendererRegistry()
        clone._types = dict(self._types)
        return clone
