"""Package specifier parsing.

A specifier names a package and optionally pins a version tag::

    typescript            -> ("typescript", None)
    nx@latest             -> ("nx", "latest")
    @angular/cli          -> ("@angular/cli", None)
    @angular/cli@17.1.0   -> ("@angular/cli", "17.1.0")
"""

from __future__ import annotations

from dataclasses import dataclass

SCOPE_MARKER = "@"
VERSION_SEPARATOR = "@"


@dataclass(frozen=True)
class Specifier:
    """A parsed ``name[@tag]`` specifier."""

    base_name: str
    version: str | None = None

    def __str__(self) -> str:
        if self.version:
            return f"{self.base_name}{VERSION_SEPARATOR}{self.version}"
        return self.base_name


def parse_specifier(text: str) -> Specifier:
    """Split a possibly-scoped, possibly-versioned specifier.

    Scoped names keep their ``@scope/`` prefix in the base name; the tag is
    whatever follows the next version separator. An empty tag (``name@``)
    is treated as no tag.
    """
    text = text.strip()
    if text.startswith(SCOPE_MARKER):
        # "@scope/name@1.2.3" -> ["", "scope/name", "1.2.3"]
        parts = text.split(VERSION_SEPARATOR, 2)
        base = SCOPE_MARKER + parts[1]
        version = parts[2] if len(parts) > 2 else None
    else:
        base, sep, version = text.partition(VERSION_SEPARATOR)
        if not sep:
            version = None
    return Specifier(base_name=base, version=version or None)
