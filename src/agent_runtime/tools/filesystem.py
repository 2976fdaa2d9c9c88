"""Filesystem tools for reading, listing and writing files.

Every path is resolved against the target directory and must stay inside it.
Executors return plain dicts; ``BuiltinTool`` turns ``success: False``
results into domain errors the model can see.
"""

import difflib
import functools
import os
from pathlib import Path
from typing import Any

from agent_runtime.telemetry import get_logger
from agent_runtime.tools.builtin import BuiltinTool
from agent_runtime.tools.types import (
    CancellationToken,
    ToolConfirmationOutcome,
    ToolDefinition,
    ToolEditConfirmationDetails,
    ToolParameter,
)

log = get_logger(__name__)


def _resolve_in_root(path: str, root: Path) -> Path:
    """Resolve ``path`` (expanding ~ and $VARS) and require it to be inside ``root``.

    Raises:
        PermissionError: If the resolved path escapes the root.
    """
    expanded = Path(os.path.expandvars(os.path.expanduser(path)))
    resolved = (expanded if expanded.is_absolute() else root / expanded).resolve()
    if not resolved.is_relative_to(root.resolve()):
        raise PermissionError(f"Path {path} is outside the target directory {root}")
    return resolved


def read_file_executor(path: str, max_size_mb: int = 10, *, root: Path) -> dict[str, Any]:
    """Execute read_file tool.

    Reads the contents of a file at the given path, with size limit enforcement.

    Args:
        path: Absolute path, or path relative to the target directory.
        max_size_mb: Maximum file size in MB (default: 10).
        root: Target directory the path must stay within.

    Returns:
        Dictionary with:
        - success: bool
        - content: str (file contents) or None if error
        - size_bytes: int (file size) or None if error
        - error: str or None
    """
    try:
        file_path = _resolve_in_root(path, root)

        if not file_path.exists():
            return {
                "success": False,
                "content": None,
                "size_bytes": None,
                "error": f"File not found: {path}",
            }

        if not file_path.is_file():
            return {
                "success": False,
                "content": None,
                "size_bytes": None,
                "error": f"Path is not a file: {path}",
            }

        file_size_bytes = file_path.stat().st_size
        max_size_bytes = int(max_size_mb * 1024 * 1024)

        if file_size_bytes > max_size_bytes:
            return {
                "success": False,
                "content": None,
                "size_bytes": file_size_bytes,
                "error": f"File size {file_size_bytes} bytes exceeds limit {max_size_bytes} bytes ({max_size_mb} MB)",
            }

        content = file_path.read_text(encoding="utf-8", errors="replace")

        return {
            "success": True,
            "content": content,
            "size_bytes": file_size_bytes,
            "error": None,
        }

    except PermissionError as e:
        return {
            "success": False,
            "content": None,
            "size_bytes": None,
            "error": f"Permission denied: {e}",
        }
    except OSError as e:
        return {
            "success": False,
            "content": None,
            "size_bytes": None,
            "error": f"Error reading file: {e}",
        }


read_file_tool = ToolDefinition(
    name="read_file",
    display_name="ReadFile",
    description="Read contents of a file at the given path",
    parameters=[
        ToolParameter(
            name="path",
            type="string",
            description="Absolute path, or path relative to the project root",
            required=True,
        ),
        ToolParameter(
            name="max_size_mb",
            type="number",
            description="Maximum file size in MB (default: 10)",
            required=False,
            default=10,
        ),
    ],
)


def list_directory_executor(
    path: str,
    *,
    include_hidden: bool = True,
    files_only: bool = False,
    directories_only: bool = False,
    max_entries: int | None = None,
    root: Path,
) -> dict[str, Any]:
    """Execute list_directory tool.

    Args:
        path: Directory path, absolute or relative to the target directory.
        include_hidden: Whether to include hidden entries (names starting with ".").
        files_only: If true, return only file entries.
        directories_only: If true, return only directory entries.
        max_entries: Optional cap on number of entries returned.
        root: Target directory the path must stay within.

    Returns:
        Dictionary with:
        - success: bool
        - entries: list[dict] (name, type, size_bytes) or None if error
        - entry_count: int or None if error
        - error: str or None
    """
    try:
        dir_path = _resolve_in_root(path, root)

        if not dir_path.exists():
            return {
                "success": False,
                "entries": None,
                "entry_count": None,
                "error": f"Directory not found: {path}",
            }

        if not dir_path.is_dir():
            return {
                "success": False,
                "entries": None,
                "entry_count": None,
                "error": f"Path is not a directory: {path}",
            }

        entries: list[dict[str, Any]] = []
        for item in sorted(dir_path.iterdir()):
            name = item.name
            if not include_hidden and name.startswith("."):
                continue

            is_dir = item.is_dir()
            if files_only and is_dir:
                continue
            if directories_only and not is_dir:
                continue

            entry_info: dict[str, Any] = {
                "name": name,
                "type": "directory" if is_dir else "file",
            }
            if not is_dir:
                try:
                    entry_info["size_bytes"] = item.stat().st_size
                except OSError:
                    entry_info["size_bytes"] = None

            entries.append(entry_info)
            if max_entries is not None and len(entries) >= max_entries:
                break

        return {
            "success": True,
            "entries": entries,
            "entry_count": len(entries),
            "error": None,
        }

    except PermissionError as e:
        return {
            "success": False,
            "entries": None,
            "entry_count": None,
            "error": f"Permission denied: {e}",
        }
    except OSError as e:
        return {
            "success": False,
            "entries": None,
            "entry_count": None,
            "error": f"Error listing directory: {e}",
        }


list_directory_tool = ToolDefinition(
    name="list_directory",
    display_name="ReadFolder",
    description="List contents of a directory. Returns files and subdirectories with their types and sizes.",
    parameters=[
        ToolParameter(
            name="path",
            type="string",
            description="Directory path to list, absolute or relative to the project root",
            required=True,
        ),
        ToolParameter(
            name="include_hidden",
            type="boolean",
            description="Include hidden entries (names starting with '.'). Default: true",
            required=False,
            default=True,
        ),
        ToolParameter(
            name="files_only",
            type="boolean",
            description="If true, return only file entries. Default: false",
            required=False,
            default=False,
        ),
        ToolParameter(
            name="directories_only",
            type="boolean",
            description="If true, return only directory entries. Default: false",
            required=False,
            default=False,
        ),
        ToolParameter(
            name="max_entries",
            type="integer",
            description="Optional cap on returned entries. Default: no cap",
            required=False,
            default=None,
        ),
    ],
)


def write_file_executor(path: str, content: str, *, root: Path) -> dict[str, Any]:
    """Execute write_file tool.

    Creates parent directories as needed and overwrites existing files.

    Args:
        path: File path, absolute or relative to the target directory.
        content: Full new file content.
        root: Target directory the path must stay within.

    Returns:
        Dictionary with success, path, created (bool), bytes_written and error.
    """
    try:
        file_path = _resolve_in_root(path, root)
        if file_path.is_dir():
            return {"success": False, "path": path, "error": f"Path is a directory: {path}"}

        created = not file_path.exists()
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content, encoding="utf-8")
        log.info("file_written", path=str(file_path), created=created, chars=len(content))
        return {
            "success": True,
            "path": str(file_path),
            "created": created,
            "bytes_written": len(content.encode("utf-8")),
            "error": None,
        }
    except PermissionError as e:
        return {"success": False, "path": path, "error": f"Permission denied: {e}"}
    except OSError as e:
        return {"success": False, "path": path, "error": f"Error writing file: {e}"}


write_file_tool = ToolDefinition(
    name="write_file",
    display_name="WriteFile",
    description="Write content to a file, creating it (and parent directories) if needed",
    parameters=[
        ToolParameter(
            name="path",
            type="string",
            description="File path, absolute or relative to the project root",
            required=True,
        ),
        ToolParameter(
            name="content",
            type="string",
            description="Complete content to write to the file",
            required=True,
        ),
    ],
)


class _WriteApproval:
    """Edit confirmation for write_file with a session-wide "proceed always"."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.auto_approve = False

    async def __call__(
        self, args: dict[str, Any], token: CancellationToken
    ) -> ToolEditConfirmationDetails | bool:
        if self.auto_approve:
            return False

        path = args.get("path")
        content = args.get("content")
        if not isinstance(path, str) or not isinstance(content, str):
            # Invalid arguments fail in execute without prompting.
            return False

        try:
            file_path = _resolve_in_root(path, self.root)
        except PermissionError:
            return False

        original = ""
        if file_path.is_file():
            original = file_path.read_text(encoding="utf-8", errors="replace")

        diff = "".join(
            difflib.unified_diff(
                original.splitlines(keepends=True),
                content.splitlines(keepends=True),
                fromfile=f"{file_path.name} (current)",
                tofile=f"{file_path.name} (proposed)",
            )
        )

        async def on_confirm(outcome: ToolConfirmationOutcome) -> None:
            if outcome == ToolConfirmationOutcome.PROCEED_ALWAYS:
                self.auto_approve = True

        return ToolEditConfirmationDetails(
            title=f"Confirm Write: {path}",
            file_name=file_path.name,
            file_diff=diff,
            on_confirm=on_confirm,
        )


def create_filesystem_tools(target_dir: Path) -> list[BuiltinTool]:
    """Build the filesystem tools bound to a target directory.

    Args:
        target_dir: Directory all paths are resolved against.

    Returns:
        read_file, list_directory and write_file tools.
    """
    return [
        BuiltinTool(read_file_tool, functools.partial(read_file_executor, root=target_dir)),
        BuiltinTool(
            list_directory_tool, functools.partial(list_directory_executor, root=target_dir)
        ),
        BuiltinTool(
            write_file_tool,
            functools.partial(write_file_executor, root=target_dir),
            confirm=_WriteApproval(target_dir),
        ),
    ]
