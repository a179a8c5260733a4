"""Data models shared by the tracker, the query path and the session."""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Union

from .config import QueryConfig


class Category(Enum):
    """Which jumper database a call targets."""
    FILES = "files"
    DIRECTORIES = "directories"


class UpdateOutcome(Enum):
    """
    Best-effort result of a database update.

    Deliberately carries no exception: tracking failures are recorded,
    never re-raised by callers.
    """
    SENT = "sent"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class QueryRequest:
    target_type: Category
    query_text: str = ""
    result_cap: Union[int, str] = 100
    syntax: str = "extended"
    case_sensitivity: str = "default"
    home_tilde: bool = True
    relative: bool = False

    @classmethod
    def from_config(cls, target_type: Category, query_text: str,
                    query: QueryConfig) -> "QueryRequest":
        return cls(
            target_type=target_type,
            query_text=query_text,
            result_cap=query.max_results,
            syntax=query.syntax,
            case_sensitivity=query.case_sensitivity,
            home_tilde=query.home_tilde,
            relative=query.relative,
        )


def expand_tilde(path: str) -> str:
    """Expand a leading ~ to the home directory; other paths are returned as is."""
    if path.startswith('~'):
        return os.path.expanduser(path)
    return path


@dataclass(frozen=True)
class PickItem:
    """One row in a quick pick."""
    label: str
    description: str = ""
    resolved_path: str = ""
    always_show: bool = True

    @classmethod
    def from_result(cls, displayed: str) -> "PickItem":
        """
        Build an item from a path as jumper printed it.

        The description keeps the displayed form (including ~); the
        resolved path is what filesystem operations use.
        """
        resolved = expand_tilde(displayed)
        label = os.path.basename(resolved.rstrip(os.sep)) or resolved
        return cls(label=label, description=displayed, resolved_path=resolved)
