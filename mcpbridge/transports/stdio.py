"""
Stdio transport: newline-delimited JSON-RPC 2.0 over a child process's
stdin/stdout.
"""

import asyncio
import json
import logging
import os
from typing import Any, Dict, Optional

from ..correlation import PendingRequest
from ..errors import ProviderInitError
from .base import Transport


logger = logging.getLogger(__name__)

STDERR_DRAIN_TIMEOUT = 0.5
EXIT_POLL_INTERVAL = 0.05


class StdioTransport(Transport):
    """
    JSON-RPC over stdin/stdout pipes to a subprocess.

    We write one request per line to the process's stdin and read responses
    from its stdout, one message per line. Responses are matched to requests
    by id, so they may arrive in any order. Stderr is kept only for
    diagnostics.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._process: Optional[asyncio.subprocess.Process] = None
        self._stdout_task: Optional[asyncio.Task] = None
        self._stderr_task: Optional[asyncio.Task] = None
        self._stderr = bytearray()

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process else None

    @property
    def returncode(self) -> Optional[int]:
        return self._process.returncode if self._process else None

    @property
    def stderr_output(self) -> str:
        return self._stderr.decode("utf-8", errors="replace")

    async def initialize(self) -> None:
        """Launch the provider subprocess and start reading its output."""
        command = [self.config.command, *self.config.args]
        env = {**os.environ, **self.config.env}

        logger.info(f"Starting stdio provider '{self.name}': {' '.join(command)}")
        try:
            self._process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
                limit=self.settings.stdout_line_limit,
            )
        except OSError as e:
            raise ProviderInitError(self.name, str(e)) from e

        self._stdout_task = asyncio.create_task(self._read_stdout(), name=f"mcpbridge-stdout-{self.name}")
        self._stderr_task = asyncio.create_task(self._read_stderr(), name=f"mcpbridge-stderr-{self.name}")

    def is_alive(self) -> bool:
        return (
            not self._closed
            and self._process is not None
            and self._process.returncode is None
        )

    async def _transmit(self, pending: PendingRequest, request: Dict[str, Any]) -> None:
        line = json.dumps(request) + "\n"
        self._process.stdin.write(line.encode("utf-8"))
        await self._process.stdin.drain()

    def _handle_line(self, raw: bytes) -> None:
        text = raw.decode("utf-8", errors="replace").strip()
        if not text:
            return
        try:
            message = json.loads(text)
        except json.JSONDecodeError:
            logger.debug(f"Failed to parse output from '{self.name}': {text[:200]}")
            return

        messages = message if isinstance(message, list) else [message]
        for item in messages:
            self.correlator.dispatch(item)

    async def _read_stdout(self) -> None:
        stdout = self._process.stdout
        while True:
            try:
                line = await stdout.readline()
            except ValueError:
                logger.debug(f"Dropping oversized line from '{self.name}'")
                continue
            if not line:
                break
            try:
                self._handle_line(line)
            except Exception as e:
                logger.debug(f"Dropping unroutable line from '{self.name}': {e}")
        await self._handle_process_exit()

    async def _read_stderr(self) -> None:
        stderr = self._process.stderr
        limit = self.settings.stderr_buffer_limit
        while True:
            chunk = await stderr.read(4096)
            if not chunk:
                break
            self._stderr.extend(chunk)
            if len(self._stderr) > limit:
                del self._stderr[:len(self._stderr) - limit]

    async def _wait_for_exit(self) -> int:
        # Process.wait() also waits for every pipe to close, so watch the
        # return code, which is set as soon as the child itself exits.
        waiter = asyncio.ensure_future(self._process.wait())
        while not waiter.done() and self._process.returncode is None:
            await asyncio.wait({waiter}, timeout=EXIT_POLL_INTERVAL)
        if waiter.done():
            return waiter.result()
        waiter.cancel()
        return self._process.returncode

    async def _handle_process_exit(self) -> None:
        code = await self._wait_for_exit()
        if self._stderr_task is not None:
            # A grandchild may keep stderr open after the provider itself exits
            await asyncio.wait({self._stderr_task}, timeout=STDERR_DRAIN_TIMEOUT)
        if self._closed:
            return
        logger.info(f"Stdio provider '{self.name}' exited with code {code}")
        if self._stderr:
            logger.debug(f"Stderr from '{self.name}': {self.stderr_output}")
        self._reject_pending(f"process exited with code {code}")
        if self.on_exit is not None:
            self.on_exit(code)

    async def teardown(self) -> None:
        """Terminate the subprocess and reject pending requests."""
        if self._closed:
            return
        self._closed = True
        self._reject_pending("shut down")

        process = self._process
        if process is not None and process.returncode is None:
            if process.stdin is not None:
                process.stdin.close()
            try:
                process.terminate()
                await asyncio.wait_for(process.wait(), timeout=self.settings.shutdown_grace_period)
            except ProcessLookupError:
                pass
            except asyncio.TimeoutError:
                logger.warning(f"Stdio provider '{self.name}' did not exit, killing it")
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
                await process.wait()

        for task in (self._stdout_task, self._stderr_task):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        logger.info(f"Stdio transport for '{self.name}' stopped")
