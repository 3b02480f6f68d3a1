"""
Command execution with error classification
"""

import time
import subprocess
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from .exceptions import CommandError


@dataclass
class CommandResult:
    """Captured outcome of an external command"""
    command: str
    returncode: int
    stdout: str
    stderr: str
    attempts: int = 1

    @property
    def success(self) -> bool:
        return self.returncode == 0


class Executor:
    """Runs external tools (xcodebuild, swift, plutil, ditto)"""

    class ErrorType(Enum):
        PERMISSION = "permission"
        MISSING_TOOL = "missing_tool"
        BUILD = "build"
        TIMEOUT = "timeout"
        UNKNOWN = "unknown"

    def __init__(self, env: Optional[Dict[str, str]] = None, logger: Optional[logging.Logger] = None):
        self.env = env
        self.logger = logger or logging.getLogger(__name__)
        self.history: List[CommandResult] = []

    def run(self,
            cmd: Union[str, Sequence[Union[str, Path]]],
            cwd: Optional[Path] = None,
            timeout: Optional[int] = None,
            retries: int = 1,
            check: bool = True) -> CommandResult:
        """Execute a command and capture its output

        Args:
            cmd: Command and arguments
            cwd: Working directory
            timeout: Seconds before the command is killed (None = no limit)
            retries: Attempts for transient failures (timeouts only)
            check: Raise CommandError on a non-zero exit

        Returns:
            CommandResult of the last attempt

        Raises:
            CommandError: If the command cannot be run, times out, or fails with check=True
        """
        args = self._normalize(cmd)
        command = ' '.join(args)

        for attempt in range(retries):
            self.logger.debug(f"Executing ({attempt+1}/{retries}): {command}")
            try:
                completed = subprocess.run(
                    args,
                    cwd=str(cwd) if cwd else None,
                    env=self.env,
                    capture_output=True,
                    encoding='utf-8',
                    errors='replace',
                    timeout=timeout
                )
            except FileNotFoundError:
                raise CommandError(
                    f"Command not found: {args[0]}",
                    command=command,
                    error_type=self.ErrorType.MISSING_TOOL
                )
            except subprocess.TimeoutExpired:
                if attempt < retries - 1:
                    wait = 2 ** attempt
                    self.logger.warning(f"Command timed out after {timeout}s. Retrying in {wait}s...")
                    time.sleep(wait)
                    continue
                raise CommandError(
                    f"Command timed out after {timeout}s: {command}",
                    command=command,
                    error_type=self.ErrorType.TIMEOUT
                )

            result = CommandResult(
                command=command,
                returncode=completed.returncode,
                stdout=completed.stdout or '',
                stderr=completed.stderr or '',
                attempts=attempt + 1
            )
            self.history.append(result)

            if check and not result.success:
                raise self.error_for(result)
            return result

    def stream(self,
               cmd: Sequence[Union[str, Path]],
               cwd: Optional[Path] = None) -> CommandResult:
        """Execute a long-running command, streaming its output to the logger

        Never raises for a non-zero exit; callers inspect the returncode.
        """
        args = self._normalize(cmd)
        command = ' '.join(args)
        lines: List[str] = []

        self.logger.info(f"Running: {command}")
        try:
            process = subprocess.Popen(
                args,
                cwd=str(cwd) if cwd else None,
                env=self.env,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                encoding='utf-8',
                errors='replace',
                bufsize=1
            )
        except FileNotFoundError:
            raise CommandError(
                f"Command not found: {args[0]}",
                command=command,
                error_type=self.ErrorType.MISSING_TOOL
            )

        # compiler diagnostics may quote non-UTF-8 source; such bytes are replaced
        with process:
            for line in process.stdout:
                line = line.rstrip()
                lines.append(line)
                self.logger.debug(line)
            process.wait()

        result = CommandResult(
            command=command,
            returncode=process.returncode,
            stdout='\n'.join(lines),
            stderr=''
        )
        self.history.append(result)
        return result

    def error_for(self, result: CommandResult) -> CommandError:
        """Build a classified CommandError for a failed result"""
        output = result.stderr or result.stdout
        error_type = self._classify_error(output)
        return CommandError(
            f"{self._get_error_message(error_type)} (exit code {result.returncode}): {result.command}",
            command=result.command,
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
            error_type=error_type
        )

    @staticmethod
    def _normalize(cmd: Union[str, Sequence[Union[str, Path]]]) -> List[str]:
        if isinstance(cmd, str):
            return cmd.split()
        return [str(part) for part in cmd]

    def _classify_error(self, output: str) -> 'Executor.ErrorType':
        """Classify error type from command output"""
        patterns = {
            self.ErrorType.PERMISSION: [
                'permission denied', 'operation not permitted'
            ],
            self.ErrorType.MISSING_TOOL: [
                'unable to find utility', 'xcrun: error', 'command not found',
                'requires xcode'
            ],
            self.ErrorType.BUILD: [
                '** build failed **', 'error:', 'compilation failed', 'linker command failed'
            ]
        }

        output_lower = output.lower()
        for error_type, keywords in patterns.items():
            if any(kw in output_lower for kw in keywords):
                return error_type

        return self.ErrorType.UNKNOWN

    def _get_error_message(self, error_type: 'Executor.ErrorType') -> str:
        """Get user-friendly error message"""
        messages = {
            self.ErrorType.PERMISSION: "Permission denied",
            self.ErrorType.MISSING_TOOL: "Required developer tool not available - is Xcode installed?",
            self.ErrorType.BUILD: "Build error - check logs for details",
            self.ErrorType.TIMEOUT: "Command timed out",
            self.ErrorType.UNKNOWN: "Command failed"
        }
        return messages.get(error_type, "Command failed")
