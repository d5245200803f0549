"""Three-tier project versions: major.minor.patch.

patch  -> draft / autosave checkpoints
minor  -> explicit archive checkpoints
major  -> publish, which forks a new project lineage
"""

import re
from typing import NamedTuple

from sopgraph.models import CheckpointType

_LEADING_DIGITS = re.compile(r"^\s*(\d+)")


class Version(NamedTuple):
    major: int
    minor: int = 0
    patch: int = 0

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


DEFAULT = Version(1, 0, 0)


def _segment(raw: str) -> int:
    match = _LEADING_DIGITS.match(raw)
    return int(match.group(1)) if match else 0


def parse_version(value: str | int | Version | None) -> Version:
    """Permissive parse. "1" -> 1.0.0, "2.x" -> 2.0.0, None -> 1.0.0."""
    if value is None:
        return DEFAULT
    if isinstance(value, Version):
        return value
    parts = [_segment(p) for p in str(value).split(".")]
    parts += [0] * (3 - len(parts))
    return Version(*parts[:3])


def format_version(value: str | int | Version | None) -> str:
    return str(parse_version(value))


def next_patch(value: str | int | Version | None) -> str:
    v = parse_version(value)
    return str(Version(v.major, v.minor, v.patch + 1))


def next_minor(value: str | int | Version | None) -> str:
    v = parse_version(value)
    return str(Version(v.major, v.minor + 1, 0))


def next_major(value: str | int | Version | None) -> str:
    v = parse_version(value)
    return str(Version(v.major + 1, 0, 0))


def bump(value: str | int | Version | None, kind: CheckpointType) -> str:
    if kind == "patch":
        return next_patch(value)
    if kind == "minor":
        return next_minor(value)
    return next_major(value)


def version_number(value: str | int | Version | None) -> int:
    """Single sortable integer for a version, used to order history records.

    Assumes minor and patch stay below 1000.
    """
    v = parse_version(value)
    return v.major * 1_000_000 + v.minor * 1_000 + v.patch
