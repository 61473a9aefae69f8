"""
Dev-server lifecycle management.

Reuses a server that is already listening on the configured port, otherwise
starts the project's ``startCommand`` and waits for it to become ready.
Readiness is a race between two detectors: a scan of the process output for
framework-specific markers and a periodic reachability poll.  The first to
succeed wins and the other is cancelled; a non-zero exit before readiness
fails immediately.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from dataclasses import dataclass, field
from typing import Any

import httpx

from uxcheck.config import ProjectConfig
from uxcheck.errors import (
    MissingStartCommandError,
    ProcessSpawnError,
    StartupTimeoutError,
)

logger = logging.getLogger("uxcheck.server")

STARTUP_TIMEOUT = 30.0
POLL_INTERVAL = 0.5
PROBE_TIMEOUT = 2.0
STOP_TIMEOUT = 5.0

READY_SIGNALS: dict[str, tuple[str, ...]] = {
    "vite": ("Local:", "VITE", "ready in"),
    "nextjs": ("Ready in", "✓ Ready", "started server"),
    "browser-sync": ("Serving files from", "Local:"),
    "static": (),
}


@dataclass
class ServerHandle:
    """
    Token for a server used by one project run.

    ``started`` is False when an already-running server was reused; in that
    case there is no process and :func:`stop_server` leaves it alone.
    """

    started: bool
    process: asyncio.subprocess.Process | None = None
    stopped: bool = False
    _drain_task: asyncio.Task[None] | None = field(default=None, repr=False)


def ready_signals_for(project_type: str | None) -> tuple[str, ...]:
    """Output markers that announce readiness for a project type."""
    if project_type in READY_SIGNALS:
        return READY_SIGNALS[project_type]
    return READY_SIGNALS["vite"]


async def check_server(origin: str, timeout: float = PROBE_TIMEOUT) -> bool:
    """Return True if anything answers HTTP at ``origin``."""
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            await client.get(origin)
        return True
    except httpx.HTTPError:
        return False


async def ensure_server(
    config: ProjectConfig,
    *,
    timeout: float = STARTUP_TIMEOUT,
    poll_interval: float = POLL_INTERVAL,
) -> ServerHandle:
    """
    Make sure the project's origin is reachable.

    Args:
        config: Project configuration (port, start command, project type)
        timeout: Seconds to wait for readiness after spawning
        poll_interval: Seconds between reachability polls

    Returns:
        A handle to pass to :func:`stop_server` when the run is over

    Raises:
        MissingStartCommandError: Nothing listening and no start command
        ProcessSpawnError: The command could not start or exited non-zero
        StartupTimeoutError: No readiness within ``timeout`` seconds
    """
    origin = config.origin
    if await check_server(origin):
        logger.info("Reusing server already running at %s", origin)
        return ServerHandle(started=False)

    if not config.start_command:
        raise MissingStartCommandError(
            f"No server running on port {config.port} and no startCommand configured.\n"
            f'Either start the dev server manually or add "startCommand" to .ux-test.json'
        )

    logger.info("Starting dev server: %s", config.start_command)
    try:
        process = await asyncio.create_subprocess_shell(
            config.start_command,
            cwd=config.project_dir,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            env={**os.environ, "FORCE_COLOR": "0"},
            start_new_session=hasattr(os, "killpg"),
        )
    except OSError as e:
        raise ProcessSpawnError(f"Failed to start server: {e}") from e

    handle = ServerHandle(started=True, process=process)
    try:
        await _wait_until_ready(
            process,
            origin,
            ready_signals_for(config.type),
            timeout=timeout,
            poll_interval=poll_interval,
            port=config.port,
        )
    except BaseException:
        await stop_server(handle)
        raise

    # Keep reading the pipe so a chatty server never blocks on a full buffer.
    handle._drain_task = asyncio.create_task(_drain_output(process))
    return handle


async def _wait_until_ready(
    process: asyncio.subprocess.Process,
    origin: str,
    signals: tuple[str, ...],
    *,
    timeout: float,
    poll_interval: float,
    port: int,
) -> None:
    tasks = [
        asyncio.create_task(_watch_output(process, signals), name="ready-signal"),
        asyncio.create_task(_poll_until_reachable(origin, poll_interval), name="ready-poll"),
        asyncio.create_task(_watch_exit(process), name="process-exit"),
    ]
    pending: set[asyncio.Task[bool]] = set(tasks)
    try:
        async with asyncio.timeout(timeout):
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    if task.result():
                        logger.info("Server ready (%s)", task.get_name())
                        return
    except TimeoutError:
        raise StartupTimeoutError(
            f"Server startup timed out after {timeout:g}s (port {port})"
        ) from None
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


async def _watch_output(process: asyncio.subprocess.Process, signals: tuple[str, ...]) -> bool:
    """Scan combined stdout/stderr for a readiness marker; False at EOF."""
    if process.stdout is None or not signals:
        return False
    tail_len = max(len(s) for s in signals)
    tail = ""
    while True:
        chunk = await process.stdout.read(4096)
        if not chunk:
            return False
        text = tail + chunk.decode(errors="replace")
        logger.debug("server: %s", text.rstrip())
        if any(sig in text for sig in signals):
            return True
        tail = text[-tail_len:]


async def _poll_until_reachable(origin: str, interval: float) -> bool:
    while True:
        await asyncio.sleep(interval)
        if await check_server(origin):
            return True


async def _watch_exit(process: asyncio.subprocess.Process) -> bool:
    code = await process.wait()
    if code != 0:
        raise ProcessSpawnError(f"Server exited with code {code}")
    return False


async def _drain_output(process: asyncio.subprocess.Process) -> None:
    if process.stdout is None:
        return
    while await process.stdout.read(4096):
        pass


async def stop_server(handle: ServerHandle | None, timeout: float = STOP_TIMEOUT) -> None:
    """
    Terminate a server this module started.

    Safe to call more than once, with None, or for a reused server.
    """
    if handle is None or handle.stopped:
        return
    handle.stopped = True

    if handle._drain_task is not None:
        handle._drain_task.cancel()
        await asyncio.gather(handle._drain_task, return_exceptions=True)

    process = handle.process
    if not handle.started or process is None:
        return

    # The shell may have exited already and left the real server in its group.
    _signal(process, signal.SIGTERM)
    try:
        await asyncio.wait_for(_wait_exited(process), timeout)
    except TimeoutError:
        logger.warning("Server did not exit after SIGTERM, killing pid %s", process.pid)
        _signal(process, signal.SIGKILL if hasattr(signal, "SIGKILL") else signal.SIGTERM)
        await process.wait()


def _signal(process: Any, sig: int) -> None:
    """Signal the whole process group when the shell started one."""
    try:
        if hasattr(os, "killpg"):
            os.killpg(process.pid, sig)
        else:
            process.terminate()
    except (ProcessLookupError, PermissionError):
        pass


async def _wait_exited(process: asyncio.subprocess.Process) -> None:
    """Wait for the shell and anything it left running in its process group."""
    if process.returncode is None:
        await process.wait()
    if not hasattr(os, "killpg"):
        return
    while True:
        try:
            os.killpg(process.pid, 0)
        except (ProcessLookupError, PermissionError):
            return
        await asyncio.sleep(0.05)
