"""Streaming answer assembly."""

from .assembler import AssembledMessage, ResponseStreamAssembler, StreamingAssembly, UpdateCallback

__all__ = ["AssembledMessage", "ResponseStreamAssembler", "StreamingAssembly", "UpdateCallback"]
