"""
File access layer used by every file tool.

FileAccess wraps read/write/list/stat over the adaptive cache. All methods
are coroutines; blocking filesystem calls run in a worker thread via
asyncio.to_thread so the event loop keeps servicing the model stream.

Unexpected I/O failures are raised as FileOperationError tagged with the
operation (read/write/list/stat) and the resolved path. The tool layer turns
those into {"success": false, ...} JSON.
"""

import asyncio
import logging
import os
import shutil
import stat as stat_module
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from agent.errors import FileOperationError, get_error_message
from tools.file_cache import AdaptiveConfig, AdaptiveFileCache

logger = logging.getLogger(__name__)

BINARY_SIZE_LIMIT = 100 * 1024 * 1024
BINARY_SAMPLE_SIZE = 1024

BINARY_EXTENSIONS = frozenset({
    # Executables / libraries
    ".exe", ".dll", ".so", ".dylib", ".bin", ".dat",
    # Images
    ".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".ico",
    # Audio / video
    ".mp3", ".mp4", ".avi", ".mov", ".wav", ".flac",
    # Archives
    ".zip", ".tar", ".gz", ".rar", ".7z",
    # Documents
    ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx",
    # Fonts
    ".woff", ".woff2", ".ttf", ".otf", ".eot",
})


def iso_timestamp(epoch_seconds: float) -> str:
    """Render a stat timestamp as an ISO-8601 UTC string (millisecond precision)."""
    dt = datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _created_time(st: os.stat_result) -> float:
    return getattr(st, "st_birthtime", st.st_ctime)


def _sample_has_nul(path: str, size: int) -> bool:
    with open(path, "rb") as f:
        return b"\x00" in f.read(min(BINARY_SAMPLE_SIZE, size))


def is_likely_binary_sync(path: str) -> bool:
    """Heuristic: oversized, denylisted extension, or a NUL byte near the start."""
    try:
        st = os.stat(path)
        if st.st_size > BINARY_SIZE_LIMIT:
            return True
        if os.path.splitext(path)[1].lower() in BINARY_EXTENSIONS:
            return True
        if st.st_size > 0:
            return _sample_has_nul(path, st.st_size)
        return False
    except OSError:
        # Undeterminable files are treated as text
        return False


async def is_likely_binary(path: str) -> bool:
    return await asyncio.to_thread(is_likely_binary_sync, path)


@dataclass
class FileContent:
    success: bool
    file_path: str
    size: int
    content: str
    last_modified: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class FileAccess:
    """Read/write/list/stat over an adaptive cache.

    Args:
        cache: Content cache shared by every read through this object.
        config: Adaptive limits; defaults to the cache's own config.
    """

    def __init__(
        self,
        cache: Optional[AdaptiveFileCache] = None,
        config: Optional[AdaptiveConfig] = None,
    ):
        if cache is None:
            cache = AdaptiveFileCache(config=config)
        self.cache = cache
        self.config = config or cache.config

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def read_file(self, file_path: str) -> FileContent:
        resolved = os.path.abspath(file_path)
        try:
            st = await asyncio.to_thread(os.stat, resolved)

            cached = self.cache.get(resolved, st.st_size, st.st_mtime)
            if cached is not None:
                logger.debug("Cache hit: %s", resolved)
                content = cached
            elif st.st_size > self.config.max_file_size:
                content = await self.stream_large_file(resolved)
            else:
                content = await asyncio.to_thread(_read_text, resolved)
                self.cache.set(resolved, content, st.st_size)
        except FileOperationError:
            raise
        except (OSError, UnicodeDecodeError) as e:
            raise FileOperationError(
                f"Failed to read file: {get_error_message(e)}",
                resolved,
                "read",
                {"original_error": type(e).__name__},
            ) from e

        return FileContent(
            success=True,
            file_path=resolved,
            size=st.st_size,
            content=content,
            last_modified=iso_timestamp(st.st_mtime),
        )

    async def stream_large_file(self, file_path: str) -> str:
        """Chunked read for files above max_file_size.

        Aborts when memory pressure crosses the threshold or the data read
        exceeds twice max_file_size.
        """
        chunk_size = self.config.chunk_size
        size_limit = self.config.max_file_size * 2
        chunks: List[bytes] = []
        total = 0

        try:
            f = await asyncio.to_thread(open, file_path, "rb")
        except OSError as e:
            raise FileOperationError(f"Stream error: {get_error_message(e)}", file_path, "read") from e

        try:
            while True:
                try:
                    chunk = await asyncio.to_thread(f.read, chunk_size)
                except OSError as e:
                    raise FileOperationError(
                        f"Stream error: {get_error_message(e)}", file_path, "read"
                    ) from e
                if not chunk:
                    break
                chunks.append(chunk)
                total += len(chunk)

                pressure = self.config.memory_pressure()
                if pressure > self.config.memory_pressure_threshold:
                    logger.warning("Aborting streamed read of %s at %.0f%% memory pressure",
                                   file_path, pressure * 100)
                    raise FileOperationError(
                        f"File streaming aborted due to high memory pressure ({round(pressure * 100)}%)",
                        file_path,
                        "read",
                    )
                if total > size_limit:
                    logger.warning("Aborting streamed read of %s: %d bytes read", file_path, total)
                    raise FileOperationError(
                        f"File too large for streaming: {total} bytes (max: {size_limit})",
                        file_path,
                        "read",
                    )
        finally:
            f.close()

        return b"".join(chunks).decode("utf-8", errors="replace")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def write_file(
        self,
        file_path: str,
        content: str,
        overwrite: bool = False,
        create_backup: bool = False,
    ) -> Dict[str, Any]:
        resolved = os.path.abspath(file_path)
        try:
            exists = await asyncio.to_thread(os.path.exists, resolved)
            if exists and not overwrite:
                return {
                    "success": False,
                    "error": "File already exists and overwrite is set to false",
                    "file_path": resolved,
                }

            if exists and create_backup:
                backup_path = f"{resolved}.backup.{int(time.time() * 1000)}"
                await asyncio.to_thread(shutil.copy2, resolved, backup_path)
                logger.info("Backed up %s to %s", resolved, backup_path)

            await asyncio.to_thread(os.makedirs, os.path.dirname(resolved), exist_ok=True)
            await asyncio.to_thread(_write_text, resolved, content)
            self.cache.delete(resolved)

            st = await asyncio.to_thread(os.stat, resolved)
        except OSError as e:
            raise FileOperationError(
                f"Failed to write file: {get_error_message(e)}",
                resolved,
                "write",
                {"original_error": type(e).__name__},
            ) from e

        return {
            "success": True,
            "file_path": resolved,
            "size": st.st_size,
            "created": iso_timestamp(_created_time(st)),
            "last_modified": iso_timestamp(st.st_mtime),
            "message": "File overwritten successfully" if exists else "File created successfully",
        }

    # ------------------------------------------------------------------
    # Listing / metadata
    # ------------------------------------------------------------------

    async def list_directory(self, directory_path: str, include_hidden: bool = False) -> Dict[str, Any]:
        resolved = os.path.abspath(directory_path)
        try:
            entries = await asyncio.to_thread(_scandir, resolved)
        except OSError as e:
            raise FileOperationError(
                f"Failed to list directory: {get_error_message(e)}",
                resolved,
                "list",
                {"original_error": type(e).__name__},
            ) from e

        if not include_hidden:
            entries = [(name, is_dir) for name, is_dir in entries if not name.startswith(".")]

        async def describe(name: str, is_dir: bool) -> Dict[str, Any]:
            kind = "directory" if is_dir else "file"
            try:
                st = await asyncio.to_thread(os.stat, os.path.join(resolved, name))
            except OSError:
                return {"name": name, "type": kind, "size": None, "last_modified": None}
            return {
                "name": name,
                "type": kind,
                "size": None if is_dir else st.st_size,
                "last_modified": iso_timestamp(st.st_mtime),
            }

        contents = await asyncio.gather(*(describe(name, is_dir) for name, is_dir in entries))
        return {
            "success": True,
            "directory_path": resolved,
            "contents": list(contents),
            "total_items": len(contents),
        }

    async def get_file_info(self, file_path: str) -> Dict[str, Any]:
        resolved = os.path.abspath(file_path)
        try:
            st = await asyncio.to_thread(os.stat, resolved)
        except OSError as e:
            raise FileOperationError(
                f"Failed to get file info: {get_error_message(e)}",
                resolved,
                "stat",
                {"original_error": type(e).__name__},
            ) from e

        if stat_module.S_ISDIR(st.st_mode):
            kind = "directory"
        elif stat_module.S_ISREG(st.st_mode):
            kind = "file"
        else:
            kind = "other"

        info: Dict[str, Any] = {
            "success": True,
            "file_path": resolved,
            "name": os.path.basename(resolved),
            "extension": os.path.splitext(resolved)[1],
            "type": kind,
            "size": st.st_size,
            "last_modified": iso_timestamp(st.st_mtime),
            "created": iso_timestamp(_created_time(st)),
            "permissions": format(st.st_mode, "o"),
            "is_readable": os.access(resolved, os.R_OK),
        }

        if kind == "directory":
            try:
                info["item_count"] = len(await asyncio.to_thread(os.listdir, resolved))
            except OSError:
                pass
        else:
            info["is_binary"] = await is_likely_binary(resolved)
            info["is_large"] = st.st_size > self.config.max_file_size

        return info

    async def is_likely_binary(self, file_path: str) -> bool:
        return await is_likely_binary(file_path)


def _read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _write_text(path: str, content: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)


def _scandir(path: str) -> List[tuple]:
    with os.scandir(path) as it:
        return [(entry.name, entry.is_dir()) for entry in it]
