"""
Path utilities for staging and scan-target resolution.

- safe_join: Join an untrusted relative path onto a trusted base directory
- validate_absolute_path: Reject relative or non-normalized paths
- get_scan_target_directory / get_secure_scan_target: Resolve the workspace to scan

safe_join is the only barrier between a caller-supplied filename such as
"../../etc/passwd" and the filesystem outside the staging area. Every file
written during staging must go through it.
"""

import os
from pathlib import Path
from typing import Optional

from symbiotic_mcp.core.config import ServerConfig
from symbiotic_mcp.core.errors import InvalidPathError, PathTraversalError


def safe_join(base_dir: str, untrusted_path: str) -> str:
    """
    Resolve untrusted_path inside base_dir.

    Args:
        base_dir: Trusted directory
        untrusted_path: Relative path supplied by a caller

    Returns:
        Absolute path strictly inside base_dir (or base_dir itself for "" / ".")

    Raises:
        PathTraversalError: If the path is absolute or resolves outside base_dir
    """
    base_path = os.path.abspath(os.path.normpath(base_dir))

    if not untrusted_path or untrusted_path == "." or not untrusted_path.strip("/\\"):
        return base_path

    if os.path.isabs(untrusted_path) or untrusted_path.startswith(("/", "\\")):
        raise PathTraversalError("Untrusted path must be relative")

    # Windows drive letters ("C:foo") are never relative to the staging area
    if len(untrusted_path) >= 2 and untrusted_path[1] == ":" and untrusted_path[0].isalpha():
        raise PathTraversalError("Untrusted path must be relative")

    full_path = os.path.abspath(os.path.join(base_path, untrusted_path))

    prefix = base_path if base_path.endswith(os.sep) else base_path + os.sep
    if not full_path.startswith(prefix):
        raise PathTraversalError(f"Untrusted path escapes the base directory: {untrusted_path}")

    return full_path


def validate_absolute_path(path_to_validate: str, param_name: str = "path") -> str:
    """Return path_to_validate unchanged if it is absolute and already normalized."""
    if not os.path.isabs(path_to_validate):
        raise InvalidPathError(f"{param_name} must be an absolute path")

    normalized = os.path.normpath(path_to_validate)
    # normpath keeps a trailing separator off; tolerate it on the input
    if normalized != path_to_validate.rstrip(os.sep) and normalized != path_to_validate:
        raise InvalidPathError(f"{param_name} contains invalid path traversal sequences")

    return normalized


def find_project_root(start_path: Optional[str] = None) -> str:
    """Walk up from start_path to the nearest directory holding .git."""
    start = Path(start_path or os.getcwd()).resolve()

    for candidate in (start, *start.parents):
        if (candidate / ".git").exists():
            return str(candidate)

    return str(start)


def get_scan_target_directory(config: ServerConfig) -> str:
    """
    Pick the directory a workspace scan should run against.

    Priority:
    1. Editor-provided directory (working_dir, workspace_folder, project_dir)
    2. Explicit scan target (MCP_SCAN_TARGET / SCAN_TARGET)
    3. Nearest git project root above the current directory
    """
    paths = config.paths

    editor_provided = paths.working_dir or paths.workspace_folder or paths.project_dir
    if editor_provided:
        return os.path.abspath(editor_provided)

    if paths.scan_target:
        return os.path.abspath(paths.scan_target)

    return find_project_root()


def get_secure_scan_target(config: ServerConfig) -> str:
    """Scan target directory, validated as an absolute normalized path."""
    return validate_absolute_path(get_scan_target_directory(config), "scan target path")
