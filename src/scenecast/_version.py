"""Version information for scenecast.

The display version may carry a build suffix from the GIT_COMMIT env var
(set at image build time). The static version is what packaging tools see.
"""

import os

BASE_VERSION = "0.1.0"


def get_git_commit() -> str:
    """Short commit hash for display, or 'dev'."""
    git_commit = os.environ.get("GIT_COMMIT", "").strip()
    if git_commit and git_commit != "dev":
        return git_commit[:8]
    return "dev"


def get_version() -> str:
    """PEP 440 version, with the commit as local identifier when known."""
    commit = get_git_commit()
    if commit != "dev":
        return f"{BASE_VERSION}+{commit}"
    return BASE_VERSION


__version__ = BASE_VERSION

VERSION = get_version()
