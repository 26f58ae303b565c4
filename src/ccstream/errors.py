from __future__ import annotations


class ClaudeSDKError(Exception):
    """Base class for every error raised or reported by ccstream."""


class CLIConnectionError(ClaudeSDKError):
    """The CLI process could not be started or talked to."""


class CLINotFoundError(CLIConnectionError):
    """The `claude` executable could not be located."""


class ProcessError(ClaudeSDKError):
    """The CLI exited with a non-zero status."""

    def __init__(self, message: str, *, exit_code: int, stderr: str = ""):
        super().__init__(message)
        self.exit_code = exit_code
        self.stderr = stderr

    def __str__(self) -> str:
        msg = f"{self.args[0]} (exit code {self.exit_code})"
        if self.stderr:
            msg += f"\nstderr: {self.stderr.strip()}"
        return msg


class CLIJSONDecodeError(ClaudeSDKError):
    """One structured-looking output line was not a JSON object."""

    def __init__(self, line: str, original_error: Exception):
        super().__init__(f"failed to decode JSON: {original_error}")
        self.line = line
        self.original_error = original_error
