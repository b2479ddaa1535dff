from __future__ import annotations
from typing import Optional

class NetwhoError(Exception):
    pass

class RemoteCommandError(NetwhoError):
    """A command run over ssh failed (non-zero exit, timeout, no ssh binary)."""

    def __init__(self, command: str, returncode: Optional[int] = None, stderr: str = ""):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr.strip()
        msg = f"remote command failed: {command!r}"
        if returncode is not None:
            msg += f" (exit {returncode})"
        if self.stderr:
            msg += f": {self.stderr}"
        super().__init__(msg)

class RulesError(NetwhoError):
    pass
