"""Build identity: version suffixes derived from branch, build id and commit.

``master`` builds with a real CI build id produce release packages (empty
package suffix). Everything else is a prerelease tagged with the branch and
revision, e.g. ``feature-xy-00042``. Local builds without a numeric build id
use the revision ``lo``.

The build suffix always carries the short commit hash so binaries can be
traced back to their source.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from buildspine.core.logging import get_logger
from buildspine.shell import CommandRunner

logger = get_logger(__name__)

RELEASE_BRANCH = "master"
LOCAL_REVISION = "lo"
BRANCH_PREFIX_LENGTH = 10


@dataclass(frozen=True)
class BuildIdentity:
    branch: str
    revision: str
    commit_hash: str
    suffix: str
    build_suffix: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def compute_revision(build_id: str | int | None) -> str:
    """Zero-padded five digit revision, or ``lo`` if the id is not an integer."""
    if build_id is None:
        return LOCAL_REVISION
    try:
        return f"{int(str(build_id).strip()):05d}"
    except ValueError:
        return LOCAL_REVISION


def compute_suffix(branch: str, revision: str) -> str:
    """Package version suffix; empty for release builds."""
    if branch == RELEASE_BRANCH and revision != LOCAL_REVISION:
        return ""
    return f"{branch[:BRANCH_PREFIX_LENGTH]}-{revision}"


def compute_build_suffix(branch: str, suffix: str, commit_hash: str) -> str:
    if suffix:
        return f"{suffix}-{commit_hash}"
    return f"{branch}-{commit_hash}"


def resolve_build_identity(
    runner: CommandRunner,
    branch: str | None = None,
    build_id: str | None = None,
    *,
    git: str = "git",
    repo_root: Path | None = None,
) -> BuildIdentity:
    """Resolve the identity of the current build.

    Parameters
    ----------
    runner
        Used for the two git queries.
    branch
        Explicit branch name. When ``None`` the current symbolic ref is used.
    build_id
        CI build id. Non-numeric values and ``None`` mean a local build.
    """
    if branch is None:
        branch = runner.output([git, "symbolic-ref", "--short", "HEAD"], cwd=repo_root)
    revision = compute_revision(build_id)
    suffix = compute_suffix(branch, revision)
    commit_hash = runner.output([git, "rev-parse", "--short", "HEAD"], cwd=repo_root)

    identity = BuildIdentity(
        branch=branch,
        revision=revision,
        commit_hash=commit_hash,
        suffix=suffix,
        build_suffix=compute_build_suffix(branch, suffix, commit_hash),
    )
    logger.info("version.resolved", **identity.to_dict())
    return identity
