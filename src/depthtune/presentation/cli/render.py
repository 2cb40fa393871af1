"""Shared CLI rendering helpers."""
from __future__ import annotations

from typing import Any, Iterable, Mapping


def render_heading(title: str) -> None:
    """Print a consistent section heading."""
    print(f"\n=== {title} ===")


def format_value(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:.3f}"
    return str(value)


def render_fields(fields: Mapping[str, Any], *, width: int = 24) -> None:
    """Print aligned key/value rows."""
    for key, value in fields.items():
        print(f"{key:<{width}} {format_value(value)}")


def render_bullet_lines(lines: Iterable[str]) -> None:
    """Print bullet-prefixed lines."""
    for line in lines:
        print(f"- {line}")


def render_counts(counts: Mapping[str, int]) -> None:
    """Print event counts, most frequent first."""
    for name, count in sorted(counts.items(), key=lambda item: (-item[1], item[0])):
        print(f"{count:>6}  {name}")
