"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Per-step decode results threaded through the wire codecs.

Decoders return either a `Decoded` value (with the offset just past what was
read) or a `DecodeFailure` explaining why the bytes could not be read. Public
helpers collapse failures into `None`/sentinel values at the boundary, so
callers that only care about best-effort results never see an exception.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Literal, TypeVar

T = TypeVar("T")

FailureReason = Literal[
    "incomplete",
    "truncated",
    "invalid_tag",
    "unknown_wire_type",
]


@dataclass(frozen=True, slots=True)
class Decoded(Generic[T]):
    """Successful decode step."""

    value: T
    offset: int


@dataclass(frozen=True, slots=True)
class DecodeFailure:
    """
    Failed decode step.

    Attributes:
        reason: Machine-readable failure category.
        offset: Offset at which the failing step started.
    """

    reason: FailureReason
    offset: int
