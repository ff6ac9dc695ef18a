"""
Exceptions raised by the simulators.

ConfigError:
    A configuration value cannot describe a real memory structure, e.g. a
    block size that is not a power of two or a page size that leaves no
    room for a VPN. The run is aborted before any access is simulated.

ParseError:
    An address or number literal could not be parsed. The run is aborted
    and the offending literal is reported.

Both derive from ValueError so callers can treat them like any other
invalid-input error.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class ConfigError(ValueError):
    """
    Invalid simulator configuration.

    Attributes:
        parameter: Name of the parameter (or derived value) that failed.
        value: The offending value.
        message: Human-readable description.
    """

    parameter: str
    value: Any = None
    message: str = ""

    def __post_init__(self) -> None:
        if not self.message:
            self.message = f"invalid value for {self.parameter}"

    def __str__(self) -> str:
        return f"{self.message} ({self.parameter}={self.value})"


@dataclass
class ParseError(ValueError):
    """
    Malformed address or number literal.

    Attributes:
        token: The raw token that could not be parsed.
        message: Human-readable description.
        line: 1-based line number in the source text, if known.
    """

    token: str
    message: str = ""
    line: Optional[int] = None

    def __post_init__(self) -> None:
        if not self.message:
            self.message = f'Invalid literal: "{self.token}"'

    def __str__(self) -> str:
        if self.line is not None:
            return f"line {self.line}: {self.message}"
        return self.message
