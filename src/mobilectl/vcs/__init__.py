"""
Version control system (VCS) integration.

This package contains the Git client used by the changelog engine to
read commit history, tags and remote information.
"""

from .git_client import GitClient, GitError  # noqa: F401
