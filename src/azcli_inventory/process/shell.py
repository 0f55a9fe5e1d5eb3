"""Host command interpreter selection.

The adapter is chosen once (``detect_shell()``) and injected into the
process runner, so no call site has to branch on the platform.

The command string is handed to the interpreter verbatim. On Windows that
means spawning in shell mode: an argument vector would be re-quoted with
MSVCRT rules (``"`` becomes ``\\"``), which cmd.exe does not undo. Callers that
interpolate resource names or ids must validate them first (see
:mod:`azcli_inventory.az_commands`).
"""

from __future__ import annotations

import os
import shlex
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ShellInvocation:
    """How to launch one command string.

    ``raw_command`` is set when the string must reach the interpreter
    untouched; the runner then spawns it in shell mode instead of
    passing ``argv``.
    """

    executable: str
    argv: tuple[str, ...]
    raw_command: str | None = None

    @property
    def command_line(self) -> str:
        """The command line the interpreter process receives."""
        if self.raw_command is not None:
            return f'{self.executable} /c "{self.raw_command}"'
        return shlex.join(self.argv)


class ShellAdapter(ABC):
    """Wraps a command string as the "run a string" argument of an interpreter."""

    name: str = "shell"
    is_windows: bool = False

    @abstractmethod
    def build(self, command: str) -> ShellInvocation:
        """Return the invocation that runs ``command`` through this interpreter."""


class PosixShell(ShellAdapter):
    """``/bin/bash -c <command>`` (or any POSIX shell)."""

    name = "posix"

    def __init__(self, executable: str = "/bin/bash") -> None:
        self.executable = executable

    def build(self, command: str) -> ShellInvocation:
        return ShellInvocation(self.executable, (self.executable, "-c", command))


class WindowsShell(ShellAdapter):
    """``cmd.exe /c <command>``.

    Spawned in shell mode, which runs ``%COMSPEC% /c "<command>"``; cmd.exe
    strips the outer quotes and sees the command exactly as given.
    """

    name = "windows"
    is_windows = True

    def __init__(self, executable: str | None = None) -> None:
        self.executable = executable or os.environ.get("COMSPEC", "cmd.exe")

    def build(self, command: str) -> ShellInvocation:
        return ShellInvocation(self.executable, (self.executable, "/c", command), raw_command=command)


def detect_shell(platform: str | None = None) -> ShellAdapter:
    """Select the adapter for the host platform.

    Args:
        platform: Override for ``sys.platform`` (mainly for tests).
    """
    platform = platform or sys.platform
    if platform.startswith("win"):
        return WindowsShell()
    if os.path.exists("/bin/bash"):
        return PosixShell("/bin/bash")
    return PosixShell("/bin/sh")


__all__ = ["PosixShell", "ShellAdapter", "ShellInvocation", "WindowsShell", "detect_shell"]
