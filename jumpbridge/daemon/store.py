"""Client for the external jumper executable.

Every database operation is a separate process invocation:

    jumper update --type=<files|directories> -w <weight> <path>
    jumper find --type=<files|directories> [options] [-- query]

Arguments are passed as an argv list, never through a shell.
"""

import asyncio
import re
import shutil
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Sequence

from loguru import logger

from .errors import StoreError
from .models import Category, QueryRequest

ANSI_ESCAPE = re.compile(r'\x1b\[[0-9;]*m')


@dataclass
class ProcessResult:
    returncode: int
    stdout: str
    stderr: str = ""


ProcessRunner = Callable[[Sequence[str]], Awaitable[ProcessResult]]


async def run_process(args: Sequence[str]) -> ProcessResult:
    """Run a command to completion and capture its output."""
    proc = await asyncio.create_subprocess_exec(
        *args,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await proc.communicate()
    return ProcessResult(
        returncode=proc.returncode,
        stdout=stdout.decode('utf-8', errors='replace'),
        stderr=stderr.decode('utf-8', errors='replace'),
    )


def strip_ansi(text: str) -> str:
    return ANSI_ESCAPE.sub('', text)


def parse_find_output(stdout: str) -> List[str]:
    """Split find output into paths, keeping jumper's order."""
    lines = []
    for line in stdout.splitlines():
        line = strip_ansi(line.strip())
        if line:
            lines.append(line)
    return lines


def build_update_args(binary: str, path: str, weight: float,
                      category: Category) -> List[str]:
    return [binary, 'update', f'--type={category.value}', '-w', str(weight), path]


def build_find_args(binary: str, request: QueryRequest) -> List[str]:
    # Colour output (-c) is never requested
    args = [binary, 'find', f'--type={request.target_type.value}']

    if request.result_cap != 'no_limit':
        args.extend(['-n', str(request.result_cap)])

    if request.home_tilde:
        args.append('-H')
    if request.relative:
        args.append('-r')

    args.append(f'--syntax={request.syntax}')

    if request.case_sensitivity == 'sensitive':
        args.append('-S')
    elif request.case_sensitivity == 'insensitive':
        args.append('-I')

    if request.query_text:
        # Query text that looks like an option must stay a query
        args.extend(['--', request.query_text])

    return args


class JumperStore:
    """Runs jumper update/find and reports failures as StoreError."""

    def __init__(self, binary: str = "jumper",
                 runner: Optional[ProcessRunner] = None):
        self.binary = binary
        self._runner = runner or run_process

    def is_installed(self) -> bool:
        return shutil.which(self.binary) is not None

    async def update(self, path: str, weight: float, category: Category) -> None:
        await self._run(build_update_args(self.binary, path, weight, category))

    async def find(self, request: QueryRequest) -> List[str]:
        result = await self._run(build_find_args(self.binary, request))
        return parse_find_output(result.stdout)

    async def _run(self, args: List[str]) -> ProcessResult:
        try:
            result = await self._runner(args)
        except (OSError, ValueError) as e:
            # ValueError: argv the OS cannot carry, such as an embedded NUL
            raise StoreError(f"Cannot run {self.binary}: {e}", args=args) from e

        if result.returncode != 0:
            raise StoreError(
                f"{self.binary} {args[1]} exited with status {result.returncode}",
                args=args,
                returncode=result.returncode,
                stderr=result.stderr,
            )

        logger.trace(f"{' '.join(args)} -> {len(result.stdout)} bytes")
        return result
