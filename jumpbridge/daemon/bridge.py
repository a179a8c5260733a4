"""Activation and the two user-facing actions.

`JumpBridge` wires one configuration snapshot into the store, the
dispatchers and the tracker. It is rebuilt whenever configuration
changes; nothing here re-reads configuration after construction.
"""

import os
from pathlib import Path
from typing import Optional

from loguru import logger

from .config import Config
from .listing import EXCLUDE_PATTERN, MAX_FILES_IN_DIRECTORY
from .models import Category, PickItem
from .path_filter import PathFilter
from .query import QueryDispatcher
from .session import SearchSession
from .shell import EditorShell
from .store import JumperStore, ProcessRunner
from .tracking import UpdateDispatcher, UsageTracker
from .weights import EventKind, WeightPolicy

INSTALL_URL = "https://github.com/homerours/jumper"
FILE_PLACEHOLDER = "Type to search files (jumper query)"
DIRECTORY_PLACEHOLDER = "Type to search directories (jumper query)"


class JumpBridge:
    """Everything one activation needs, built from a config snapshot."""

    def __init__(self, config: Config, runner: Optional[ProcessRunner] = None):
        self.config = config
        self.weights = WeightPolicy.from_config(config.weights)
        self.store = JumperStore(config.binary, runner=runner)
        self.path_filter = PathFilter(config.tracking.exclude_patterns)
        self.updates = UpdateDispatcher(self.store, self.path_filter)
        self.queries = QueryDispatcher(self.store, config.query)
        self.tracker = UsageTracker(self.updates, self.weights,
                                    config.tracking.debounce_ms)
        self.installed: Optional[bool] = None

    def check_installation(self, shell: Optional[EditorShell] = None) -> bool:
        """Check once for the jumper binary; warn but never block."""
        if self.installed is None:
            self.installed = self.store.is_installed()
            if not self.installed:
                message = (f"Jumper is not installed. Please follow the "
                           f"instructions at {INSTALL_URL}")
                if shell is not None:
                    shell.show_warning_message(message)
                else:
                    logger.warning(message)
        return self.installed

    async def jump_to_file(self, shell: EditorShell) -> Optional[PickItem]:
        """Live file search; opens the chosen file."""
        async def open_selected(path: str) -> None:
            await self.open_file(shell, Path(path))

        session = SearchSession(
            shell.create_quick_pick(),
            self.queries,
            Category.FILES,
            placeholder=FILE_PLACEHOLDER,
            on_select=open_selected,
        )
        return await session.run()

    async def jump_to_directory(self, shell: EditorShell) -> Optional[PickItem]:
        """Live directory search; records the visit, then picks a file inside."""
        async def enter_directory(path: str) -> None:
            await self.updates.record_usage(
                path,
                self.weights.weight_for(EventKind.DIRECTORY_VISIT),
                Category.DIRECTORIES,
            )
            await self.pick_file_in_directory(shell, Path(path))

        session = SearchSession(
            shell.create_quick_pick(),
            self.queries,
            Category.DIRECTORIES,
            placeholder=DIRECTORY_PLACEHOLDER,
            on_select=enter_directory,
        )
        return await session.run()

    async def pick_file_in_directory(self, shell: EditorShell,
                                     directory: Path) -> Optional[Path]:
        """Static (non-live) pick over the files under `directory`."""
        try:
            files = await shell.find_files(directory, EXCLUDE_PATTERN,
                                           MAX_FILES_IN_DIRECTORY)
        except OSError as e:
            shell.show_error_message(f"Failed to read directory: {e}")
            return None

        if not files:
            shell.show_information_message(f"No files found in {directory}")
            return None

        items = [
            PickItem(
                label=file_path.name,
                description=os.path.relpath(file_path, directory),
                resolved_path=str(file_path),
            )
            for file_path in files
        ]

        selected = await shell.show_quick_pick(
            items,
            placeholder=f"Select a file in {directory.name}",
            match_on_description=True,
        )
        if selected is None:
            return None

        chosen = Path(selected.resolved_path)
        await self.open_file(shell, chosen)
        return chosen

    async def open_file(self, shell: EditorShell, path: Path) -> bool:
        try:
            await shell.open_document(path, preview=not self.config.open_in_new_tab)
        except OSError as e:
            logger.info(f"Could not open {path}: {e}")
            shell.show_error_message(f"Failed to open file: {e}")
            return False
        return True
