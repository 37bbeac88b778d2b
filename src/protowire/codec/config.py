"""Decoder configuration.

This module provides the configuration dataclass accepted by ``decode`` and
``Message.parse``.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CodecConfig:
    """Limits and policies applied while decoding.

    Attributes:
        recursion_limit: Maximum nesting depth of embedded messages (default 100).
            Input nested deeper fails with RecursionLimitExceeded instead of
            exhausting the interpreter stack.

        discard_unknown_fields: Skip fields the schema does not declare instead
            of retaining them for re-encoding (default False).

    Examples:
        ```python
        from protowire import CodecConfig, decode

        # Shallow messages only, drop data from newer schema versions
        config = CodecConfig(recursion_limit=8, discard_unknown_fields=True)
        message = decode(data, Telemetry, config)
        ```
    """

    recursion_limit: int = 100
    discard_unknown_fields: bool = False

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if self.recursion_limit < 1:
            raise ValueError(f"recursion_limit must be >= 1, got {self.recursion_limit}")


DEFAULT_CONFIG = CodecConfig()
