"""File tools: read, write, list, delete, mkdir and stat inside the base directory"""

import logging
import os
import stat
from datetime import datetime, timezone

from toolgate.errors import ErrorCode

from .base import Tool, ToolResult, make_debug

logger = logging.getLogger(__name__)

DEFAULT_READ_LIMIT = 8192


def _still_resolves_to(context, requested: str, expected: str):
    """Re-resolve after creating directories; returns an error result if the path moved."""
    again = context.paths.resolve_allowed(requested, "write")
    if not again.ok:
        return ToolResult.from_error(again.error, make_debug(context.start))
    if again.value != expected:
        return ToolResult.failure(
            ErrorCode.DENIED_PATH_ALLOWLIST,
            f"Path '{requested}' changed while it was being created.",
            {"path": requested},
            make_debug(context.start),
        )
    return None


class ReadFileTool(Tool):
    name = "read_file"
    description = "Read a text file in pages. Use offset/limit to continue where the last read stopped."

    def get_parameters_schema(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "Path relative to the base directory",
                },
                "offset": {
                    "type": "integer",
                    "description": "Byte offset to start reading from (default: 0)",
                },
                "limit": {
                    "type": "integer",
                    "description": f"Maximum bytes to read (default: {DEFAULT_READ_LIMIT})",
                },
            },
            "required": ["path"],
        }

    async def execute(self, args: dict, context) -> ToolResult:
        target = context.paths.resolve_allowed(args["path"], "read")
        if not target.ok:
            return ToolResult.from_error(target.error, make_debug(context.start))

        offset = args.get("offset", 0)
        limit = args.get("limit", DEFAULT_READ_LIMIT)
        if offset < 0:
            return ToolResult.failure(
                ErrorCode.INVALID_ARGUMENT, "offset must be >= 0.", {"field": "offset"}, make_debug(context.start)
            )
        if limit <= 0:
            return ToolResult.failure(
                ErrorCode.INVALID_ARGUMENT, "limit must be > 0.", {"field": "limit"}, make_debug(context.start)
            )
        limit = min(limit, context.limits.max_read_size)

        try:
            st = os.stat(target.value)
        except OSError as e:
            return ToolResult.failure(
                ErrorCode.EXEC_ERROR, f"Failed to stat file: {e.strerror or e}", debug=make_debug(context.start)
            )
        if stat.S_ISDIR(st.st_mode):
            return ToolResult.failure(
                ErrorCode.EXEC_ERROR,
                f"Path '{args['path']}' is a directory, not a file.",
                debug=make_debug(context.start),
            )

        file_size = st.st_size
        if offset >= file_size:
            return ToolResult.success(
                {"content": "", "bytes_read": 0, "next_offset": offset, "eof": True, "file_size": file_size},
                make_debug(context.start),
            )

        try:
            with open(target.value, "rb") as f:
                f.seek(offset)
                data = f.read(limit)
        except OSError as e:
            return ToolResult.failure(
                ErrorCode.EXEC_ERROR, f"Failed to read file: {e.strerror or e}", debug=make_debug(context.start)
            )

        next_offset = offset + len(data)
        return ToolResult.success(
            {
                "content": data.decode("utf-8", errors="replace"),
                "bytes_read": len(data),
                "next_offset": next_offset,
                "eof": next_offset >= file_size,
                "file_size": file_size,
            },
            make_debug(context.start),
        )


class WriteFileTool(Tool):
    name = "write_file"
    description = "Create or overwrite a text file with the given content."

    def get_parameters_schema(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "Path relative to the base directory",
                },
                "content": {
                    "type": "string",
                    "description": "Content to write",
                },
                "confirm": {
                    "type": "boolean",
                    "description": "Set to true when the policy requires confirmation",
                },
            },
            "required": ["path", "content"],
        }

    async def execute(self, args: dict, context) -> ToolResult:
        target = context.paths.resolve_allowed(args["path"], "write")
        if not target.ok:
            return ToolResult.from_error(target.error, make_debug(context.start))

        data = args["content"].encode("utf-8")
        max_size = context.limits.max_write_size
        if len(data) > max_size:
            return ToolResult.failure(
                ErrorCode.VALIDATION_ERROR,
                f"Content exceeds maximum size of {max_size} bytes.",
                debug=make_debug(context.start),
            )

        try:
            os.makedirs(os.path.dirname(target.value), exist_ok=True)
            moved = _still_resolves_to(context, args["path"], target.value)
            if moved is not None:
                return moved
            with open(target.value, "wb") as f:
                f.write(data)
        except OSError as e:
            return ToolResult.failure(
                ErrorCode.EXEC_ERROR, f"Failed to write file: {e.strerror or e}", debug=make_debug(context.start)
            )

        logger.info(f"Wrote {len(data)} bytes to {target.value}")
        return ToolResult.success({"bytes": len(data)}, make_debug(context.start))


class ListFilesTool(Tool):
    name = "list_files"
    description = "List the entries of a directory. Hidden files are not shown."

    def get_parameters_schema(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "Directory relative to the base directory (default: the base directory)",
                },
            },
            "required": [],
        }

    async def execute(self, args: dict, context) -> ToolResult:
        requested = args.get("path")
        if requested:
            target = context.paths.resolve_allowed(requested, "list")
        else:
            target = context.paths.assert_allowed(context.base_dir, "list")
        if not target.ok:
            return ToolResult.from_error(target.error, make_debug(context.start))

        if not os.path.isdir(target.value):
            return ToolResult.failure(
                ErrorCode.VALIDATION_ERROR,
                f"Path '{requested or '.'}' is not a directory.",
                debug=make_debug(context.start),
            )

        try:
            with os.scandir(target.value) as it:
                raw_entries = list(it)
        except OSError as e:
            return ToolResult.failure(
                ErrorCode.EXEC_ERROR, f"Failed to list files: {e.strerror or e}", debug=make_debug(context.start)
            )

        entries = []
        for entry in raw_entries:
            # Hidden names often hold credentials (.npmrc, .ssh)
            if entry.name.startswith("."):
                continue
            if not context.paths.is_allowed(entry.path, "list"):
                continue
            if entry.is_dir(follow_symlinks=False):
                kind = "directory"
            elif entry.is_symlink():
                kind = "symlink"
            else:
                kind = "file"
            entries.append({"name": entry.name, "type": kind})

        entries.sort(key=lambda e: e["name"])
        return ToolResult.success({"entries": entries}, make_debug(context.start))


class DeleteFileTool(Tool):
    name = "delete_file"
    description = "Delete a single file. Directories are not removed."

    def get_parameters_schema(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "path": {"type": "string", "description": "File relative to the base directory"},
                "confirm": {"type": "boolean", "description": "Set to true when the policy requires confirmation"},
            },
            "required": ["path"],
        }

    async def execute(self, args: dict, context) -> ToolResult:
        target = context.paths.resolve_allowed(args["path"], "write")
        if not target.ok:
            return ToolResult.from_error(target.error, make_debug(context.start))

        if not os.path.lexists(target.value):
            return ToolResult.failure(
                ErrorCode.EXEC_ERROR, f"File not found: {args['path']}", debug=make_debug(context.start)
            )
        if os.path.isdir(target.value) and not os.path.islink(target.value):
            return ToolResult.failure(
                ErrorCode.VALIDATION_ERROR,
                f"Path '{args['path']}' is a directory; delete_file only removes files.",
                debug=make_debug(context.start),
            )
        try:
            os.remove(target.value)
        except OSError as e:
            return ToolResult.failure(
                ErrorCode.EXEC_ERROR, f"Failed to delete file: {e.strerror or e}", debug=make_debug(context.start)
            )
        return ToolResult.success({"deleted": args["path"]}, make_debug(context.start))


class CreateDirectoryTool(Tool):
    name = "create_directory"
    description = "Create a directory, including missing parents."

    def get_parameters_schema(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "path": {"type": "string", "description": "Directory relative to the base directory"},
            },
            "required": ["path"],
        }

    async def execute(self, args: dict, context) -> ToolResult:
        target = context.paths.resolve_allowed(args["path"], "write")
        if not target.ok:
            return ToolResult.from_error(target.error, make_debug(context.start))
        if os.path.exists(target.value) and not os.path.isdir(target.value):
            return ToolResult.failure(
                ErrorCode.VALIDATION_ERROR,
                f"Path '{args['path']}' exists and is not a directory.",
                debug=make_debug(context.start),
            )
        try:
            os.makedirs(target.value, exist_ok=True)
        except OSError as e:
            return ToolResult.failure(
                ErrorCode.EXEC_ERROR, f"Failed to create directory: {e.strerror or e}", debug=make_debug(context.start)
            )
        moved = _still_resolves_to(context, args["path"], target.value)
        if moved is not None:
            return moved
        return ToolResult.success({"created": args["path"]}, make_debug(context.start))


class FileInfoTool(Tool):
    name = "file_info"
    description = "Show size, type, permissions and modification time of a path."

    def get_parameters_schema(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "path": {"type": "string", "description": "Path relative to the base directory"},
            },
            "required": ["path"],
        }

    async def execute(self, args: dict, context) -> ToolResult:
        # Denials propagate as PathBlockedError
        target = context.paths.require_allowed(args["path"], "read")
        try:
            st = os.lstat(target)
        except OSError as e:
            return ToolResult.failure(
                ErrorCode.EXEC_ERROR, f"Failed to stat path: {e.strerror or e}", debug=make_debug(context.start)
            )

        if stat.S_ISDIR(st.st_mode):
            kind = "directory"
        elif stat.S_ISLNK(st.st_mode):
            kind = "symlink"
        else:
            kind = "file"
        return ToolResult.success(
            {
                "path": args["path"],
                "type": kind,
                "size": st.st_size,
                "mode": oct(stat.S_IMODE(st.st_mode)),
                "modified": datetime.fromtimestamp(st.st_mtime, tz=timezone.utc).isoformat(),
            },
            make_debug(context.start),
        )
