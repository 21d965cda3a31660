# ABOUTME: Utility modules for alph
# ABOUTME: Exports file operations, backups, safe-edit and validation helpers

from alph.utils.backup import (
    cleanup_old_backups,
    create_backup,
    list_backups,
    restore_backup,
)
from alph.utils.safe_edit import (
    EditState,
    SafeEditResult,
    rollback,
    safe_deep_merge,
    safe_edit,
    safe_merge,
    safe_update_path,
)
from alph.utils.validation import Violation, validate_agent_config, validate_url

__all__ = [
    "EditState",
    "SafeEditResult",
    "Violation",
    "cleanup_old_backups",
    "create_backup",
    "list_backups",
    "restore_backup",
    "rollback",
    "safe_deep_merge",
    "safe_edit",
    "safe_merge",
    "safe_update_path",
    "validate_agent_config",
    "validate_url",
]
