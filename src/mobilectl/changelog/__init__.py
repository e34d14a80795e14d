"""
Changelog engine for mobilectl.

The engine turns a range of commits into a Markdown changelog section
and writes it without ever losing the previous file content. The
pieces are the commit parser, the backup manager, the safe writer, the
state manager and the orchestrator that drives them. See
:mod:`mobilectl.changelog.orchestrator` for the control flow.
"""

from .backup_manager import BackupManager, FileSystemBackupManager  # noqa: F401
from .commit_parser import CommitParser, GitCommitParser, parse_commit_message  # noqa: F401
from .models import BackupInfo, ChangelogState, Commit, GenerationResult, Result  # noqa: F401
from .orchestrator import ChangelogOrchestrator, create_orchestrator  # noqa: F401
from .state import JsonStateManager, StateManager  # noqa: F401
from .writer import ChangelogWriter, SafeChangelogWriter  # noqa: F401
