# gateway/core/versioning.py
"""
Semantic version parsing and range satisfaction.

Supported range syntax (whitespace = AND, ``||`` = OR):

- bare full version ``1.4.0``      minimum bound, same as ``>=1.4.0``
- comparators ``>=1.4 <2``, ``>1.0.0``, ``<=2.1``, ``=1.2.3``
- x-ranges ``1.x``, ``1.2.*``, ``*``, ``x``
- caret ``^1.2.3`` / tilde ``~1.2.3``
- hyphen ranges ``1.2.3 - 2.3``

Missing components of a reported version count as zero (``1.2`` == ``1.2.0``).
Pre-release versions sort before their release (``1.0.0-rc.1 < 1.0.0``).
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from functools import total_ordering

_VERSION_RE = re.compile(
    r"^[v=]*\s*"
    r"(?P<major>0|[1-9]\d*|[xX*])"
    r"(?:\.(?P<minor>0|[1-9]\d*|[xX*]))?"
    r"(?:\.(?P<patch>0|[1-9]\d*|[xX*]))?"
    r"(?:-(?P<pre>[0-9A-Za-z.-]+))?"
    r"(?:\+[0-9A-Za-z.-]+)?$"
)
_COMPARATOR_RE = re.compile(r"^(?P<op><=|>=|<|>|=|\^|~>|~)?(?P<version>.*)$")
_HYPHEN_RE = re.compile(r"^(?P<low>\S+)\s+-\s+(?P<high>\S+)$")
_WILDCARDS = {"x", "X", "*"}


class InvalidVersionError(ValueError):
    """Raised for strings that are neither a version nor a range."""


@total_ordering
@dataclass(frozen=True)
class Version:
    major: int
    minor: int = 0
    patch: int = 0
    prerelease: tuple[str, ...] = ()

    def _key(self):
        # A release sorts after all of its pre-releases.
        pre_key: tuple = (1,) if not self.prerelease else (0, tuple(
            (0, int(part), "") if part.isdigit() else (1, 0, part)
            for part in self.prerelease
        ))
        return (self.major, self.minor, self.patch, pre_key)

    def __lt__(self, other: "Version") -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() < other._key()

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += "-" + ".".join(self.prerelease)
        return text


@dataclass(frozen=True)
class _Partial:
    """A possibly incomplete version as written in a range: ``1``, ``1.2``, ``1.x``."""

    major: int | None
    minor: int | None
    patch: int | None
    prerelease: tuple[str, ...] = ()
    wildcard: bool = False  # an x/X/* was written explicitly

    @property
    def is_any(self) -> bool:
        return self.major is None

    @property
    def is_full(self) -> bool:
        return self.patch is not None

    def floor(self) -> Version:
        return Version(self.major or 0, self.minor or 0, self.patch or 0, self.prerelease)

    def ceiling(self) -> Version:
        """First version above every version this partial matches."""
        if self.minor is None:
            return Version(self.major + 1, 0, 0)
        if self.patch is None:
            return Version(self.major, self.minor + 1, 0)
        return Version(self.major, self.minor, self.patch + 1)


def _parse_partial(text: str) -> _Partial:
    text = text.strip()
    if text in ("", *_WILDCARDS):
        return _Partial(None, None, None, wildcard=True)

    match = _VERSION_RE.match(text)
    if not match:
        raise InvalidVersionError(f"Invalid version: {text!r}")

    parts: list[int | None] = []
    wildcard = False
    truncated = False
    for name in ("major", "minor", "patch"):
        raw = match.group(name)
        if raw in _WILDCARDS:
            wildcard = True
        if raw is None or raw in _WILDCARDS or truncated:
            truncated = True
            parts.append(None)
        else:
            parts.append(int(raw))

    pre = match.group("pre")
    prerelease = tuple(pre.split(".")) if pre and not truncated else ()
    return _Partial(parts[0], parts[1], parts[2], prerelease, wildcard)


def parse_version(text: str) -> Version:
    """
    Parse a reported version. Wildcards are not allowed here;
    missing minor/patch components default to zero.
    """
    if text is None:
        raise InvalidVersionError("Version is missing")
    partial = _parse_partial(text)
    if partial.wildcard:
        raise InvalidVersionError(f"Not a concrete version: {text!r}")
    return partial.floor()


# A primitive is (operator, Version) with operator in <, <=, >, >=, =
Primitive = tuple[str, Version]


def _expand_comparator(token: str) -> list[Primitive]:
    match = _COMPARATOR_RE.match(token)
    op = match.group("op") or ""
    partial = _parse_partial(match.group("version"))

    if op == "~>":
        op = "~"

    if partial.is_any:
        # ">*" and "<*" match nothing; everything else matches all
        return [("<", Version(0, 0, 0))] if op in (">", "<") else []

    if op == "":
        if partial.wildcard:
            # "1.x", "1.2.*"
            return [(">=", partial.floor()), ("<", partial.ceiling())]
        # Bare version: minimum bound
        return [(">=", partial.floor())]

    if op == "=":
        if partial.is_full:
            return [("=", partial.floor())]
        return [(">=", partial.floor()), ("<", partial.ceiling())]

    if op == ">=":
        return [(">=", partial.floor())]

    if op == "<":
        return [("<", partial.floor())]

    if op == ">":
        if partial.is_full:
            return [(">", partial.floor())]
        return [(">=", partial.ceiling())]

    if op == "<=":
        if partial.is_full:
            return [("<=", partial.floor())]
        return [("<", partial.ceiling())]

    if op == "~":
        low = partial.floor()
        if partial.minor is None:
            return [(">=", low), ("<", Version(low.major + 1, 0, 0))]
        return [(">=", low), ("<", Version(low.major, low.minor + 1, 0))]

    # op == "^": do not change the left-most non-zero component
    low = partial.floor()
    if partial.minor is None or low.major > 0:
        high = Version(low.major + 1, 0, 0)
    elif partial.patch is None or low.minor > 0:
        high = Version(0, low.minor + 1, 0)
    else:
        high = Version(0, 0, low.patch + 1)
    return [(">=", low), ("<", high)]


def _expand_hyphen(low_text: str, high_text: str) -> list[Primitive]:
    low = _parse_partial(low_text)
    high = _parse_partial(high_text)
    primitives: list[Primitive] = []
    if not low.is_any:
        primitives.append((">=", low.floor()))
    if not high.is_any:
        if high.is_full:
            primitives.append(("<=", high.floor()))
        else:
            primitives.append(("<", high.ceiling()))
    return primitives


def _normalize(text: str) -> str:
    # ">= 1.2.0" -> ">=1.2.0"
    return re.sub(r"(<=|>=|<|>|=|\^|~>|~)\s+", r"\1", text.strip())


@dataclass(frozen=True)
class VersionRange:
    """A parsed range: OR over alternatives, each an AND of primitives."""

    raw: str
    alternatives: tuple[tuple[Primitive, ...], ...]

    def contains(self, version: Version) -> bool:
        return any(
            all(_test(op, version, bound) for op, bound in alternative)
            for alternative in self.alternatives
        )


def _test(op: str, version: Version, bound: Version) -> bool:
    if op == "<":
        return version < bound
    if op == "<=":
        return version <= bound
    if op == ">":
        return version > bound
    if op == ">=":
        return version >= bound
    return version == bound


def parse_range(text: str) -> VersionRange:
    if text is None:
        raise InvalidVersionError("Range is missing")

    alternatives = []
    for part in text.split("||"):
        part = part.strip()
        hyphen = _HYPHEN_RE.match(part)
        if hyphen:
            alternatives.append(tuple(_expand_hyphen(hyphen.group("low"), hyphen.group("high"))))
            continue

        primitives: list[Primitive] = []
        for token in _normalize(part).split():
            primitives.extend(_expand_comparator(token))
        alternatives.append(tuple(primitives))

    return VersionRange(raw=text, alternatives=tuple(alternatives))

