"""Media source node: exposes an uploaded or local media file to downstream nodes."""
from typing import Any

from ..engine.executor import NodeInputs, NodeOutputs
from ..engine.graph import Node
from .base import BaseNode, HandleType, InputSpec, OutputSpec
from .registry import NodeRegistry


@NodeRegistry.register("media")
class MediaNode(BaseNode):
    """Output a media reference, preferring the remote URL over the local path."""

    CATEGORY = "Input"
    DISPLAY_NAME = "Media"

    @classmethod
    def INPUT_TYPES(cls) -> dict[str, InputSpec]:
        return {}

    @classmethod
    def RETURN_TYPES(cls) -> list[OutputSpec]:
        return [OutputSpec(HandleType.ANY, "out")]

    async def execute(self, node: Node, inputs: NodeInputs, context: dict[str, Any]) -> NodeOutputs:
        media_type = node.data.get("mediaType") or "image"
        media_path = node.data.get("mediaPath") or ""
        remote_url = node.data.get("replicateUrl")

        try:
            handle_type = HandleType(media_type.lower())
        except ValueError:
            handle_type = HandleType.IMAGE

        return {
            "out": {
                "type": handle_type.value,
                "value": remote_url or media_path,
                "metadata": {
                    "isReplicateUrl": bool(remote_url),
                    "localPath": media_path,
                },
            },
        }
