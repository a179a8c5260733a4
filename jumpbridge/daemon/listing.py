"""One-shot recursive file listing for the nested directory pick."""

import asyncio
import os
from fnmatch import fnmatchcase
from pathlib import Path
from typing import List, Optional

MAX_FILES_IN_DIRECTORY = 1000
EXCLUDE_PATTERN = "**/node_modules/**"


def _excluded(relative: str, pattern: Optional[str]) -> bool:
    if not pattern:
        return False
    # Leading slash lets "**/x/**" match x at the top level too
    return fnmatchcase(relative, pattern) or fnmatchcase("/" + relative, pattern)


def list_files(directory: Path,
               exclude: Optional[str] = EXCLUDE_PATTERN,
               max_results: int = MAX_FILES_IN_DIRECTORY) -> List[Path]:
    """
    Walk `directory` and return up to `max_results` files.

    Directories matching the exclusion glob are not descended into.
    Order is stable: directories and files are visited alphabetically.
    """
    root = Path(directory)
    if not root.is_dir():
        raise NotADirectoryError(f"Not a directory: {root}")

    found: List[Path] = []

    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        rel_dir = current.relative_to(root).as_posix()
        rel_dir = "" if rel_dir == "." else rel_dir + "/"

        dirnames[:] = sorted(
            d for d in dirnames
            if not _excluded(f"{rel_dir}{d}/", exclude)
        )

        for name in sorted(filenames):
            if _excluded(f"{rel_dir}{name}", exclude):
                continue
            found.append(current / name)
            if len(found) >= max_results:
                return found

    return found


async def find_files(directory: Path,
                     exclude: Optional[str] = EXCLUDE_PATTERN,
                     max_results: int = MAX_FILES_IN_DIRECTORY) -> List[Path]:
    return await asyncio.to_thread(list_files, directory, exclude, max_results)
