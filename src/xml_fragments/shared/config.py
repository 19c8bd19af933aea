"""Configuration classes for XML fragment extraction.

This module provides the immutable configuration objects used by the fragment
parser (which element names open a scope, which are captured as headers and
which produce fragments) and by the streaming decoder.
"""

import json
from dataclasses import asdict, dataclass, field
from enum import Flag, auto
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from .errors import FragmentError


class Role(Flag):
    """Roles an element local name can play during a scan."""

    NONE = 0
    ROOT = auto()      # Opens (or resets) a template scope
    HEADER = auto()    # Captured and accumulated on the active template
    BODY = auto()      # Captured and emitted as a fragment


class ConfigError(FragmentError, ValueError):
    """Base exception for configuration errors."""


class ConfigValidationError(ConfigError):
    """Exception raised when configuration validation fails."""

    def __init__(self, message: str, field_name: Optional[str] = None,
                 suggestions: Optional[List[str]] = None):
        super().__init__(message)
        self.field_name = field_name
        self.suggestions = suggestions or []


def _check_name(value: Any, field_name: str) -> None:
    if not isinstance(value, str) or not value:
        raise ConfigValidationError(
            f"{field_name} must be a non-empty element name",
            field_name=field_name,
        )
    if ":" in value or "{" in value:
        raise ConfigValidationError(
            f"{field_name} must be a local name without prefix or namespace: {value!r}",
            field_name=field_name,
            suggestions=[f"Use {value.rsplit(':', 1)[-1].rsplit('}', 1)[-1]!r}"],
        )


@dataclass(frozen=True)
class FragmentConfig:
    """Element names that drive fragment extraction.

    Matching is by local name only; namespaces are ignored.

    Attributes:
        body: Local name of the element matched for each fragment.
        root: Local name of the element opening a header scope. Defaults to
            ``body`` when empty.
        headers: Local names of the elements between root and body that are
            captured onto every fragment of the scope.
    """

    body: str = ""
    root: str = ""
    headers: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        """Validate and normalise the configuration."""
        _check_name(self.body, "body")
        if self.root:
            _check_name(self.root, "root")
        if isinstance(self.headers, str):
            raise ConfigValidationError(
                "headers must be a sequence of names, not a string",
                field_name="headers",
                suggestions=[f"Use headers=[{self.headers!r}]"],
            )
        headers = tuple(self.headers or ())
        for name in headers:
            _check_name(name, "headers")
        # frozen dataclass: normalise lists to tuples
        object.__setattr__(self, "headers", headers)

    @property
    def effective_root(self) -> str:
        """Root local name actually used for matching."""
        return self.root or self.body

    def roles(self) -> Dict[str, Role]:
        """Map each configured local name to the roles it plays."""
        roles: Dict[str, Role] = {}
        roles[self.effective_root] = roles.get(self.effective_root, Role.NONE) | Role.ROOT
        for name in self.headers:
            roles[name] = roles.get(name, Role.NONE) | Role.HEADER
        roles[self.body] = roles.get(self.body, Role.NONE) | Role.BODY
        return roles

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary format."""
        return {"root": self.root, "body": self.body, "headers": list(self.headers)}

    def to_json(self, indent: int = 2) -> str:
        """Convert configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FragmentConfig":
        """Create configuration from dictionary.

        Unknown keys are rejected so that typos do not silently change which
        elements are matched.
        """
        unknown = set(data) - {"root", "body", "headers"}
        if unknown:
            raise ConfigValidationError(
                f"Unknown fragment configuration keys: {sorted(unknown)}",
                suggestions=["Valid keys are 'root', 'body' and 'headers'"],
            )
        return cls(
            body=data.get("body", ""),
            root=data.get("root") or "",
            headers=tuple(data.get("headers") or ()),
        )

    @classmethod
    def from_json(cls, json_str: str) -> "FragmentConfig":
        """Create configuration from JSON string."""
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise ConfigValidationError(f"Invalid configuration JSON: {e}") from e
        if not isinstance(data, dict):
            raise ConfigValidationError("Configuration JSON must be an object")
        return cls.from_dict(data)

    @classmethod
    def from_file(cls, config_path: Union[str, Path]) -> "FragmentConfig":
        """Load configuration from a JSON file."""
        path = Path(config_path)
        if not path.is_file():
            raise ConfigValidationError(f"Configuration file not found: {path}")
        return cls.from_json(path.read_text(encoding="utf-8"))


@dataclass(frozen=True)
class StreamConfig:
    """Configuration for the streaming XML decoder."""

    chunk_size: int = 65536
    resolve_entities: bool = False
    huge_tree: bool = False
    keep_comments: bool = True

    def __post_init__(self) -> None:
        """Validate stream configuration."""
        if not isinstance(self.chunk_size, int) or self.chunk_size <= 0:
            raise ConfigValidationError(
                "chunk_size must be > 0", field_name="chunk_size"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary format."""
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        """Convert configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StreamConfig":
        """Create configuration from dictionary, ignoring unknown keys."""
        known = {name: data[name] for name in cls.__dataclass_fields__ if name in data}
        return cls(**known)

    @classmethod
    def from_json(cls, json_str: str) -> "StreamConfig":
        """Create configuration from JSON string."""
        return cls.from_dict(json.loads(json_str))
