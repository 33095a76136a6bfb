"""External transformation tools.

Thumbnails are produced by ImageMagick's ``convert`` and rendered documents by
``pandoc``. Both are run as subprocesses: input path in, artifact out, exit
code signals success.
"""

import asyncio
import contextlib
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

# Scale to 10%, never below 200x200, never above 500x500
THUMBNAIL_RESIZE_STEPS = ("10%", "200x200<", "500x500>")
THUMBNAIL_QUALITY = "20%"

# Bytes of stderr kept on ToolError for diagnostics
_STDERR_TAIL = 2000


class ToolError(RuntimeError):
    """External tool could not be spawned, timed out, or exited non-zero."""

    def __init__(self, message: str, *, returncode: int | None = None, stderr: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


def thumbnail_command(convert: str, source: Path, output: Path) -> list[str]:
    """Build the ImageMagick command line for a thumbnail.

    Args:
        convert: ImageMagick executable (e.g., "convert" or "magick")
        source: Source image
        output: Destination; its extension selects the output format

    Returns:
        Argument vector
    """
    argv = [convert, str(source)]
    for step in THUMBNAIL_RESIZE_STEPS:
        argv += ["-resize", step]
    argv += ["-quality", THUMBNAIL_QUALITY, str(output)]
    return argv


def render_command(pandoc: str, source: Path, output: Path, stylesheet: str) -> list[str]:
    """Build the pandoc command line for a standalone HTML document.

    Args:
        pandoc: Pandoc executable
        source: Markup document
        output: Destination HTML file
        stylesheet: Stylesheet URL linked from the rendered page

    Returns:
        Argument vector
    """
    return [
        pandoc,
        str(source),
        "--standalone",
        "--css",
        stylesheet,
        "--output",
        str(output),
    ]


class ToolRunner:
    """Runs external tools to completion with a bounded timeout."""

    def __init__(self, timeout: float = 60.0) -> None:
        """Initialize runner.

        Args:
            timeout: Seconds to wait before the process is killed
        """
        self._timeout = timeout

    async def run(self, argv: list[str]) -> None:
        """Run a command and wait for it to exit.

        Args:
            argv: Command and arguments

        Raises:
            ToolError: If the process cannot be spawned, exceeds the timeout,
                or exits with a non-zero status
        """
        logger.debug(f"Running {' '.join(argv)}")
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ToolError(f"Failed to start {argv[0]}: {e}") from e

        try:
            _, stderr_data = await asyncio.wait_for(process.communicate(), self._timeout)
        except TimeoutError as e:
            await _kill(process)
            raise ToolError(f"{argv[0]} timed out after {self._timeout}s") from e
        except asyncio.CancelledError:
            await _kill(process)
            raise

        stderr = stderr_data.decode("utf-8", errors="replace")[-_STDERR_TAIL:]
        if process.returncode != 0:
            raise ToolError(
                f"{argv[0]} exited with status {process.returncode}",
                returncode=process.returncode,
                stderr=stderr,
            )
        if stderr:
            logger.debug(f"{argv[0]} stderr: {stderr}")


async def _kill(process: asyncio.subprocess.Process) -> None:
    """Kill a still-running process and reap it."""
    if process.returncode is None:
        with contextlib.suppress(ProcessLookupError):
            process.kill()
    await process.wait()
