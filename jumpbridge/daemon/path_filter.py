"""Decides which file paths are worth recording in the jumper database."""

from fnmatch import fnmatchcase
from typing import Iterable, Optional

_GLOB_CHARS = set("*?[")


class PathFilter:
    """
    Rejects paths that are not real, trackable files.

    Rules, first match rejects:
    1. empty path
    2. path containing ':' (untitled/virtual buffer identifiers)
    3. path matching an exclusion pattern

    Patterns with glob characters are matched against the whole path;
    plain patterns match as substrings, so "/.git/" excludes anything
    inside a repository's git directory.

    The editor's URI scheme is not inspected here. Non-file schemes are
    dropped where events are observed.
    """

    def __init__(self, exclude_patterns: Iterable[str] = ()):
        self.exclude_patterns = tuple(p for p in exclude_patterns if p)

    def is_trackable(self, path: Optional[str]) -> bool:
        if not path:
            return False

        if ':' in path:
            return False

        return not any(self._matches(path, pattern) for pattern in self.exclude_patterns)

    @staticmethod
    def _matches(path: str, pattern: str) -> bool:
        if _GLOB_CHARS.intersection(pattern):
            return fnmatchcase(path, pattern)
        return pattern in path
