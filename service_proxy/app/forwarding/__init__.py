"""
Forwarding package for the proxy service.

- paths: /v3/ prefix and /pdf suffix contract, query normalization, URL building.
- forwarder: generic JSON passthrough returning a status envelope.
- binary: whole-payload relay for PDF resources.
"""

from .binary import BinaryForwarder, BinaryResult
from .forwarder import ForwardResult, JsonForwarder

__all__ = [
    "BinaryForwarder",
    "BinaryResult",
    "ForwardResult",
    "JsonForwarder",
]
