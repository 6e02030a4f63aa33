"""Execution planning: the shared injection-offset table and the plan builder.

The builder lives in aggregator.execution.builder; it is not re-exported here
because the venue encoders import the offset table from this package.
"""

from aggregator.execution.offsets import (
    INJECTION_OFFSETS,
    CallShape,
    inject_word,
    injection_offset,
    read_word,
)

__all__ = [
    "CallShape",
    "INJECTION_OFFSETS",
    "injection_offset",
    "inject_word",
    "read_word",
]
