"""Child-process plumbing: interpreter selection and the async runner.

Usage:
    from azcli_inventory.process import ProcessRunner

    runner = ProcessRunner(timeout=120)
    result = await runner.run_captured("az account show -o json")
    exit_code = await runner.run_streaming("az login", print, print)
"""

from azcli_inventory.process.runner import (
    CapturedOutput,
    LineCallback,
    OutputLine,
    ProcessRunner,
    ProcessStream,
    StreamName,
)
from azcli_inventory.process.shell import (
    PosixShell,
    ShellAdapter,
    ShellInvocation,
    WindowsShell,
    detect_shell,
)

__all__ = [
    "CapturedOutput",
    "LineCallback",
    "OutputLine",
    "PosixShell",
    "ProcessRunner",
    "ProcessStream",
    "ShellAdapter",
    "ShellInvocation",
    "StreamName",
    "WindowsShell",
    "detect_shell",
]
