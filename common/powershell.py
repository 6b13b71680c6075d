"""
Long-lived PowerShell host.

The SharePoint Online Management Shell only exists as a PowerShell module, and
its login lives inside the PowerShell process that ran Connect-SPOService. So
the client keeps one process open and feeds it commands over stdin.

Each command is wrapped so that its result (or error) comes back as a single
compact JSON line prefixed with RESULT_MARKER, followed by a sentinel line
that marks the end of the command's output.
"""
import json
import logging
import subprocess
import uuid
from typing import Any, List, Optional

from config.config import POWERSHELL_EXE

logger = logging.getLogger("dag.common.powershell")

RESULT_MARKER = "__DAG_RESULT__"
SENTINEL_PREFIX = "__DAG_END_"
JSON_DEPTH = 6


class PowerShellError(Exception):
    """Base exception for PowerShell host failures (process missing or died)."""
    pass


class PowerShellCommandError(PowerShellError):
    """Raised when a command ran but PowerShell reported an error."""

    def __init__(self, command: str, message: str) -> None:
        super().__init__(message)
        self.command = command
        self.message = message


def ps_quote(value: Any) -> str:
    """Render ``value`` as a single-quoted PowerShell string literal."""
    return "'" + str(value).replace("'", "''") + "'"


def build_script(command: str, sentinel: str) -> str:
    """
    Wrap ``command`` so it always answers with one envelope line and a sentinel.

    The whole wrapper is a single line: PowerShell reading from stdin runs
    each line as soon as it is complete.
    """
    return (
        "try { $__r = @(" + command + "); "
        "if ($__r.Count -eq 1) { $__r = $__r[0] } elseif ($__r.Count -eq 0) { $__r = $null }; "
        "$__e = @{ ok = $true; data = $__r } } "
        "catch { $__e = @{ ok = $false; error = $_.Exception.Message } }; "
        f"Write-Output ('{RESULT_MARKER}' + ($__e | ConvertTo-Json -Depth {JSON_DEPTH} -Compress -EnumsAsStrings)); "
        f"Write-Output '{sentinel}'\n"
    )


def parse_envelope(command: str, lines: List[str]) -> Any:
    """Extract the result from the output lines of one wrapped command."""
    envelope = None
    for line in lines:
        if line.startswith(RESULT_MARKER):
            try:
                envelope = json.loads(line[len(RESULT_MARKER):])
            except ValueError as e:
                raise PowerShellError(f"Malformed result returned for command: {command}: {e}")
        elif line.strip():
            logger.debug(f"PowerShell output: {line}")

    if envelope is None:
        raise PowerShellError(f"No result returned for command: {command}")
    if not envelope.get("ok"):
        raise PowerShellCommandError(command, envelope.get("error") or "Unknown PowerShell error")
    return envelope.get("data")


class PowerShellClient:
    """Handles low-level communication with a PowerShell process."""

    def __init__(self, executable: str = POWERSHELL_EXE, cwd: Optional[str] = None):
        """
        Args:
            executable: PowerShell executable (pwsh by default)
            cwd: Working directory of the process; exported files land here
        """
        self.executable = executable
        self.cwd = cwd
        self._process: Optional[subprocess.Popen] = None

    @property
    def running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    def start(self) -> None:
        """Starts the PowerShell process if it is not already running."""
        if self.running:
            return
        logger.info(f"Starting PowerShell host: {self.executable}")
        try:
            self._process = subprocess.Popen(
                [self.executable, "-NoLogo", "-NoProfile", "-NonInteractive", "-Command", "-"],
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
                cwd=self.cwd,
            )
        except OSError as e:
            logger.error(f"Failed to start PowerShell: {e}")
            raise PowerShellError(f"Cannot start '{self.executable}': {e}")

        self.invoke("$ErrorActionPreference = 'Stop'; $ProgressPreference = 'SilentlyContinue'")

    def invoke(self, command: str) -> Any:
        """
        Runs ``command`` and returns its output converted from JSON.

        A single output object is returned as-is, several as a list and no
        output as None.
        """
        self.start()
        sentinel = f"{SENTINEL_PREFIX}{uuid.uuid4().hex}__"
        logger.debug(f"Executing PowerShell command: {command}")

        try:
            self._process.stdin.write(build_script(command, sentinel))
            self._process.stdin.flush()
        except (OSError, ValueError) as e:
            raise PowerShellError(f"PowerShell process is not accepting input: {e}")

        lines: List[str] = []
        while True:
            line = self._process.stdout.readline()
            if not line:
                raise PowerShellError(f"PowerShell exited while running: {command}")
            line = line.rstrip("\r\n")
            if line == sentinel:
                break
            lines.append(line)

        return parse_envelope(command, lines)

    def close(self) -> None:
        """Gracefully ends the PowerShell process."""
        if self._process is None:
            return
        logger.info("Closing PowerShell host.")
        try:
            if self._process.poll() is None:
                self._process.stdin.write("exit\n")
                self._process.stdin.flush()
                self._process.wait(timeout=10)
        except (OSError, ValueError, subprocess.TimeoutExpired) as e:
            logger.warning(f"PowerShell did not exit cleanly, terminating: {e}")
            self._process.kill()
        finally:
            self._process = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
