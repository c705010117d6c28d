"""
Staging area management: materialize caller-supplied files into a temp directory.

Each scan request gets its own uniquely named directory under the system temp
root. The directory is removed when the request ends, whatever the outcome.
"""

import asyncio
import logging
import os
import shutil
import tempfile
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable, List, Mapping, Union

from symbiotic_mcp.core.errors import InvalidInputError, StagingWriteError
from symbiotic_mcp.core.models import CodeFile
from symbiotic_mcp.core.paths import safe_join

logger = logging.getLogger(__name__)

FileLike = Union[CodeFile, Mapping[str, object]]


def _coerce_code_file(entry: FileLike) -> CodeFile:
    if isinstance(entry, CodeFile):
        return entry
    if isinstance(entry, Mapping):
        return CodeFile(filename=entry.get("filename"), content=entry.get("content"))
    # Pydantic models and other attribute-style objects
    return CodeFile(
        filename=getattr(entry, "filename", None), content=getattr(entry, "content", None)
    )


def validate_code_files(code_files: Iterable[FileLike]) -> List[CodeFile]:
    """
    Check a caller-supplied file list before anything touches the disk.

    Raises:
        InvalidInputError: Empty list, missing/absolute filename, or non-string content
    """
    if code_files is None or isinstance(code_files, (str, bytes, Mapping)):
        raise InvalidInputError("code_files must be a non-empty array")

    files = [_coerce_code_file(entry) for entry in code_files]
    if not files:
        raise InvalidInputError("code_files must be a non-empty array")

    for code_file in files:
        if not code_file.filename or not isinstance(code_file.filename, str):
            raise InvalidInputError("Each code file must have a valid filename")

        if os.path.isabs(code_file.filename):
            raise InvalidInputError("Filenames must be relative paths")

        if not isinstance(code_file.content, str):
            raise InvalidInputError("Each code file must have string content")

    return files


def _write_files(temp_dir: str, code_files: List[CodeFile]) -> None:
    for code_file in code_files:
        target = safe_join(temp_dir, code_file.filename)
        try:
            os.makedirs(os.path.dirname(target), exist_ok=True)
            with open(target, "w", encoding="utf-8", newline="") as f:
                f.write(code_file.content)
        except (OSError, UnicodeError) as e:
            raise StagingWriteError(code_file.filename, getattr(e, "strerror", None) or str(e))


def _remove_tree(path: str) -> None:
    shutil.rmtree(path)


async def create_staging_area(
    code_files: Iterable[FileLike], prefix: str, cleanup_on_error: bool = True
) -> str:
    """
    Create a temp directory and write every file into it.

    Args:
        code_files: Files to stage (CodeFile instances or {filename, content} mappings)
        prefix: Name prefix for the temp directory
        cleanup_on_error: Remove the partially-written directory if staging fails

    Returns:
        Absolute path of the staging root

    Raises:
        InvalidInputError: The file list is invalid (no directory is created)
        PathTraversalError: A filename escapes the staging root
        StagingWriteError: A file could not be written
    """
    files = validate_code_files(code_files)

    temp_dir = await asyncio.to_thread(tempfile.mkdtemp, prefix=prefix)
    logger.debug(f"Created staging area {temp_dir} for {len(files)} files")

    try:
        await asyncio.to_thread(_write_files, temp_dir, files)
    except Exception as e:
        logger.warning(f"⚠️  Staging failed in {temp_dir}: {e}")
        if cleanup_on_error:
            await destroy_staging_area(temp_dir)
        raise

    return temp_dir


async def destroy_staging_area(temp_dir: str) -> None:
    """Recursively remove a staging area. Failures are logged, never raised."""
    if not temp_dir or not os.path.exists(temp_dir):
        return

    try:
        await asyncio.to_thread(_remove_tree, temp_dir)
        logger.debug(f"Removed staging area {temp_dir}")
    except OSError as e:
        logger.warning(f"⚠️  Failed to cleanup temporary directory {temp_dir}: {e}")


@asynccontextmanager
async def staging_area(
    code_files: Iterable[FileLike], prefix: str, cleanup_on_error: bool = True
) -> AsyncIterator[str]:
    """Stage files for the duration of an ``async with`` block."""
    temp_dir = await create_staging_area(code_files, prefix, cleanup_on_error)
    try:
        yield temp_dir
    finally:
        await destroy_staging_area(temp_dir)
