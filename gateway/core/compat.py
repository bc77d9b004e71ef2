# gateway/core/compat.py
"""
Worker admission by version.

A worker reports up to three versions (worker binary, settings schema,
coverage tooling). Each one is checked against its own optional
requirement; the first violation, in the order worker -> settings ->
coverage, turns the worker away before it can consume a job.
"""
from __future__ import annotations

from dataclasses import dataclass

from gateway.core.errors import OutdatedWorkerError
from gateway.core.versioning import InvalidVersionError, parse_range, parse_version
from gateway.infra.logging_config import get_logger

logger = get_logger(__name__)

# Evaluation order matters: the first failing concern is the one reported.
CONCERNS = ("worker", "settings", "coverage")


@dataclass(frozen=True)
class CompatibilityRequirements:
    """Range expressions per concern; ``None`` means no requirement."""

    worker: str | None = None
    settings: str | None = None
    coverage: str | None = None


@dataclass(frozen=True)
class WorkerVersions:
    """Versions self-reported by a worker; any of them may be absent."""

    worker: str | None = None
    settings: str | None = None
    coverage: str | None = None


def _requirement_met(concern: str, requirement: str, reported: str | None) -> bool:
    if reported is None:
        return False

    try:
        version_range = parse_range(requirement)
    except InvalidVersionError:
        logger.error(
            f"Invalid {concern} version requirement {requirement!r}, rejecting worker"
        )
        return False

    try:
        version = parse_version(reported)
    except InvalidVersionError:
        logger.info(f"Unparsable {concern} version reported: {reported!r}")
        return False

    return version_range.contains(version)


def check_compatibility(
    versions: WorkerVersions,
    requirements: CompatibilityRequirements,
) -> None:
    """
    Raise OutdatedWorkerError on the first unmet requirement.

    Returns None when every configured requirement is satisfied.
    """
    for concern in CONCERNS:
        requirement = getattr(requirements, concern)
        if not requirement or not requirement.strip():
            continue

        reported = getattr(versions, concern)
        if not _requirement_met(concern, requirement, reported):
            raise OutdatedWorkerError(
                concern,
                f"{concern} version {reported or '<missing>'} does not satisfy {requirement!r}",
            )
