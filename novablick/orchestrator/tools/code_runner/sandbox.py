"""
Python execution in an isolated interpreter subprocess.

Isolation is process level only (``python -I`` ignores user site-packages and
PYTHON* environment variables); it is not a security sandbox. Deploy the
service in a container without network or credential access.
"""

import asyncio
import logging
import os
import re
import sys
import textwrap
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

DEFAULT_TIMEOUT_SECONDS = 30.0
# Room for a few base64 PNG figures printed by plt.show().
DEFAULT_MAX_OUTPUT_CHARS = 1_000_000
_READ_CHUNK_BYTES = 64 * 1024

ERROR_PREFIX = "error: "

MATPLOTLIB_HANDLER = textwrap.dedent(
    """
    import io
    import base64
    from matplotlib import pyplot as plt

    plt.clf()
    plt.close('all')
    plt.switch_backend('agg')

    def _show_as_data_url(*args, **kwargs):
        figure = plt.gcf()
        if figure.get_size_inches().prod() * figure.dpi ** 2 > 25_000_000:
            print("Warning: Plot size too large, reducing quality")
            figure.set_dpi(100)

        png_buf = io.BytesIO()
        plt.savefig(png_buf, format='png')
        png_buf.seek(0)
        png_base64 = base64.b64encode(png_buf.read()).decode('utf-8')
        print(f'data:image/png;base64,{png_base64}')
        png_buf.close()

        plt.clf()
        plt.close('all')

    plt.show = _show_as_data_url
    """
)

_MATPLOTLIB_RE = re.compile(r"\bmatplotlib\b|\bplt\.")


def requires_matplotlib(code: str) -> bool:
    return bool(_MATPLOTLIB_RE.search(code))


async def _read_bounded(stream: asyncio.StreamReader, limit: int, *, drain: bool = False) -> Tuple[bytes, bool]:
    """
    Read ``stream`` keeping at most ``limit`` bytes. Returns the kept bytes and
    whether more was written. With ``drain`` the rest is read and discarded
    until EOF so the writer never blocks on a full pipe.
    """

    kept = bytearray()
    overflowed = False
    while True:
        chunk = await stream.read(_READ_CHUNK_BYTES)
        if not chunk:
            return bytes(kept), overflowed
        room = limit - len(kept)
        if len(chunk) > room:
            kept.extend(chunk[:room])
            overflowed = True
            if not drain:
                return bytes(kept), overflowed
        else:
            kept.extend(chunk)


@dataclass(slots=True)
class ExecutionResult:
    lines: List[str] = field(default_factory=list)
    exit_code: Optional[int] = None
    timed_out: bool = False

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0 and not self.timed_out


class PythonSandbox:
    """Runs one script per call in a fresh ``python -I`` process."""

    def __init__(
        self,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_output_chars: int = DEFAULT_MAX_OUTPUT_CHARS,
        python_executable: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive.")
        self.timeout_seconds = timeout_seconds
        self.max_output_chars = max_output_chars
        self.python_executable = python_executable or sys.executable
        self.logger = logger or logging.getLogger(__name__)

    def build_script(self, code: str) -> str:
        if requires_matplotlib(code):
            return f"{MATPLOTLIB_HANDLER}\n{code}"
        return code

    async def run(self, code: str) -> ExecutionResult:
        script = self.build_script(code)
        env = {
            "PATH": os.environ.get("PATH", ""),
            "PYTHONIOENCODING": "utf-8",
            "MPLBACKEND": "Agg",
        }
        try:
            process = await asyncio.create_subprocess_exec(
                self.python_executable,
                "-I",
                "-",
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
            )
        except OSError as exc:
            self.logger.error("Failed to start Python interpreter: %s", exc)
            return ExecutionResult(lines=[f"{ERROR_PREFIX}could not start interpreter: {exc}"])

        try:
            stdout, stderr, overflowed = await asyncio.wait_for(
                self._collect(process, script.encode("utf-8")),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            await self._kill(process)
            self.logger.info("Code execution timed out after %.1fs", self.timeout_seconds)
            return ExecutionResult(
                lines=[f"{ERROR_PREFIX}execution timed out after {self.timeout_seconds:g} seconds"],
                timed_out=True,
            )
        except asyncio.CancelledError:
            await self._kill(process)
            raise

        lines = self._split(stdout.decode("utf-8", errors="replace"))
        if overflowed:
            self.logger.info("Code output exceeded %d characters; process killed", self.max_output_chars)
            lines.append(f"{ERROR_PREFIX}output exceeded {self.max_output_chars} characters; execution stopped")
        elif process.returncode != 0:
            detail = stderr.decode("utf-8", errors="replace").strip()
            lines.append(f"{ERROR_PREFIX}{detail or f'process exited with code {process.returncode}'}")
        return ExecutionResult(lines=lines, exit_code=process.returncode)

    async def _collect(self, process: asyncio.subprocess.Process, script: bytes) -> Tuple[bytes, bytes, bool]:
        """Feed ``script`` and read both pipes, never holding more than ``max_output_chars`` bytes of each."""

        assert process.stdin is not None and process.stdout is not None and process.stderr is not None
        try:
            process.stdin.write(script)
            await process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError):
            # The interpreter exited before reading the whole script; its stderr says why.
            self.logger.debug("Interpreter closed stdin early")
        finally:
            process.stdin.close()

        async def read_stdout() -> Tuple[bytes, bool]:
            output, overflowed = await _read_bounded(process.stdout, self.max_output_chars)
            if overflowed:
                await self._kill(process)
            return output, overflowed

        (stdout, overflowed), (stderr, _) = await asyncio.gather(
            read_stdout(),
            _read_bounded(process.stderr, self.max_output_chars, drain=True),
        )
        await process.wait()
        return stdout, stderr, overflowed

    @staticmethod
    def _split(output: str) -> List[str]:
        return [line for line in output.splitlines() if line.strip()]

    async def _kill(self, process: asyncio.subprocess.Process) -> None:
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                return
            await process.wait()


__all__ = [
    "DEFAULT_MAX_OUTPUT_CHARS",
    "DEFAULT_TIMEOUT_SECONDS",
    "ERROR_PREFIX",
    "ExecutionResult",
    "MATPLOTLIB_HANDLER",
    "PythonSandbox",
    "requires_matplotlib",
]
