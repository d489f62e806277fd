"""Base node abstraction and handle type definitions."""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..engine.executor import NodeInputs, NodeOutputs
from ..engine.graph import Node


class HandleType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    MODEL = "model"
    ANY = "any"


# Which handle types can connect to which
TYPE_COMPATIBILITY: dict[HandleType, set[HandleType]] = {
    ht: {ht, HandleType.ANY} for ht in HandleType
}
TYPE_COMPATIBILITY[HandleType.ANY] = set(HandleType)


@dataclass
class InputSpec:
    dtype: HandleType
    required: bool = False
    multiple: bool = True  # accepts more than one incoming edge


@dataclass
class OutputSpec:
    dtype: HandleType
    name: str


@dataclass
class NodeDefinition:
    """Serializable node definition sent to the frontend."""
    node_type: str
    display_name: str
    category: str
    description: str
    inputs: dict[str, InputSpec]
    outputs: list[OutputSpec]


class BaseNode(ABC):
    """Abstract base class for node executors."""

    CATEGORY: str = "Uncategorized"
    DISPLAY_NAME: str = ""
    DESCRIPTION: str = ""

    @classmethod
    @abstractmethod
    def INPUT_TYPES(cls) -> dict[str, InputSpec]:
        ...

    @classmethod
    @abstractmethod
    def RETURN_TYPES(cls) -> list[OutputSpec]:
        ...

    @abstractmethod
    async def execute(
        self, node: Node, inputs: NodeInputs, context: dict[str, Any],
    ) -> NodeOutputs:
        ...

    @classmethod
    def get_definition(cls, node_type: str) -> NodeDefinition:
        return NodeDefinition(
            node_type=node_type,
            display_name=cls.DISPLAY_NAME or cls.__name__,
            category=cls.CATEGORY,
            description=cls.DESCRIPTION or cls.__doc__ or "",
            inputs=cls.INPUT_TYPES(),
            outputs=cls.RETURN_TYPES(),
        )


def input_records(inputs: NodeInputs, handle: str) -> list[dict[str, Any]]:
    """Return the records on ``handle`` as a list, whether one or many arrived."""
    value = inputs.get(handle)
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]
