"""Local text nodes: chips feeding placeholder values, and text display sinks."""
from typing import Any

from ..engine.executor import NodeInputs, NodeOutputs
from ..engine.graph import Node
from .base import BaseNode, HandleType, InputSpec, OutputSpec, input_records
from .registry import NodeRegistry


@NodeRegistry.register("chip")
class ChipNode(BaseNode):
    """Emit a short text value tagged with its chip id."""

    CATEGORY = "Input"
    DISPLAY_NAME = "Chip"

    @classmethod
    def INPUT_TYPES(cls) -> dict[str, InputSpec]:
        return {}

    @classmethod
    def RETURN_TYPES(cls) -> list[OutputSpec]:
        return [OutputSpec(HandleType.TEXT, "out")]

    async def execute(self, node: Node, inputs: NodeInputs, context: dict[str, Any]) -> NodeOutputs:
        return {
            "out": {
                "type": HandleType.TEXT.value,
                "value": node.data.get("content") or "",
                "chipId": node.data.get("chipId") or node.id,
                "isChip": True,
            },
        }


@NodeRegistry.register("display-text")
class DisplayTextNode(BaseNode):
    """Collect incoming text, concatenated in edge order."""

    CATEGORY = "Output"
    DISPLAY_NAME = "Display Text"

    @classmethod
    def INPUT_TYPES(cls) -> dict[str, InputSpec]:
        return {"text-in": InputSpec(HandleType.TEXT, required=True)}

    @classmethod
    def RETURN_TYPES(cls) -> list[OutputSpec]:
        return [OutputSpec(HandleType.TEXT, "default")]

    async def execute(self, node: Node, inputs: NodeInputs, context: dict[str, Any]) -> NodeOutputs:
        text = "".join(str(r.get("value") or "") for r in input_records(inputs, "text-in"))
        return {"default": {"type": HandleType.TEXT.value, "value": text}}


@NodeRegistry.register("markdown")
class MarkdownNode(DisplayTextNode):
    DISPLAY_NAME = "Markdown"
