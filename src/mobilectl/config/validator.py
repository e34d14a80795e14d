"""
Validation of the changelog configuration.

Validation happens before the orchestrator runs. Problems are reported
as field-tagged :class:`ValidationError` values instead of exceptions,
so the CLI can print all of them at once and decide whether to abort.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from mobilectl.config.models import SUPPORTED_FORMATS, ChangelogConfig


class ValidationSeverity(Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass
class ValidationError:
    """A single configuration problem."""

    field: str
    message: str
    severity: ValidationSeverity = ValidationSeverity.ERROR
    suggestion: Optional[str] = None

    def __str__(self) -> str:
        prefix = "✗" if self.severity is ValidationSeverity.ERROR else "⚠"
        text = f"{prefix} {self.field}: {self.message}"
        if self.suggestion:
            text += f"\n   💡 {self.suggestion}"
        return text


def validate_changelog_config(config: ChangelogConfig) -> List[ValidationError]:
    """Validate ``config`` and return every problem found.

    Disabled configurations are not validated.
    """
    errors: List[ValidationError] = []
    if not config.enabled:
        return errors

    fmt = config.format.strip()
    if fmt not in SUPPORTED_FORMATS:
        errors.append(ValidationError(
            field="changelog.format",
            message=f"Invalid format '{fmt}'",
            suggestion="Use 'markdown'",
        ))

    output_file = config.output_file.strip()
    if not output_file:
        errors.append(ValidationError(
            field="changelog.output_file",
            message="Cannot be empty",
            suggestion="Set to 'CHANGELOG.md'",
        ))
    elif not output_file.endswith(".md"):
        errors.append(ValidationError(
            field="changelog.output_file",
            message="Should be a .md file",
            severity=ValidationSeverity.WARNING,
            suggestion="Change to CHANGELOG.md",
        ))

    if not config.commit_types:
        errors.append(ValidationError(
            field="changelog.commit_types",
            message="At least one must be defined",
            suggestion="Add commit types like 'feat', 'fix', 'docs'",
        ))
    else:
        seen = set()
        for commit_type in config.commit_types:
            if commit_type.key in seen:
                errors.append(ValidationError(
                    field="changelog.commit_types",
                    message=f"Duplicate commit type '{commit_type.key}'",
                ))
            seen.add(commit_type.key)

    return errors


def has_errors(errors: List[ValidationError]) -> bool:
    return any(e.severity is ValidationSeverity.ERROR for e in errors)
