"""
Configuration loading for mobilectl.

Provides the changelog configuration models, a loader for the
``mobileops.yaml`` project file and a validator that reports
field-tagged problems. See :mod:`mobilectl.config.loader` for details.
"""

from .loader import ConfigError, load_config  # noqa: F401
from .models import ChangelogConfig, CommitType, ReleaseNotes  # noqa: F401
from .validator import ValidationError, ValidationSeverity, validate_changelog_config  # noqa: F401
