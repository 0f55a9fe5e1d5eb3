"""Settings mixins for the provider, the fetch pipeline and the CLI.

ProviderSettingsMixin: Which command-line tool to drive and how long to wait for it.
FetchSettingsMixin: Permission filtering and single-flight policy for the orchestrator.
AppSettingsMixin: Application identity and disk layout (app_name, workspace, paths).
CLISettingsMixin: Logging and activity-log settings.

These modules live outside cli/ so that config.py can compose Settings
without importing the cli package.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator


class ProviderSettingsMixin:
    """Settings for the external command-line provider tool.

    Should be composed with Settings via multiple inheritance.
    """

    cli_tool: str = Field(
        default="az",
        title="CLI Tool",
        description="Executable name of the cloud provider's command-line tool",
        json_schema_extra={"ui_order": 10},
    )
    command_timeout: float = Field(
        default=120.0,
        title="Command Timeout",
        description="Seconds before a captured command (list, probe, IP lookup) is killed",
        json_schema_extra={"ui_order": 11},
    )
    login_timeout: float = Field(
        default=900.0,
        title="Login Timeout",
        description="Seconds before a streaming operation (login, logout, account show) is killed",
        json_schema_extra={"ui_order": 12},
    )
    probe_timeout: float = Field(
        default=60.0,
        title="Probe Timeout",
        description="Seconds before a permission probe is killed",
        json_schema_extra={"ui_order": 13},
    )
    authorization_markers: list[str] = Field(
        default_factory=lambda: ["AuthorizationFailed", "does not have authorization"],
        title="Authorization Markers",
        description="Substrings in probe output that mark a resource as not accessible",
        json_schema_extra={"ui_order": 14},
    )


class FetchSettingsMixin:
    """Settings for the resource fetch pipeline."""

    permission_filter: bool = Field(
        default=False,
        title="Permission Filter",
        description="Keep only VMs and NSGs that pass the write-permission probe",
        json_schema_extra={"ui_order": 20},
    )
    concurrency_policy: Literal["reject", "queue"] = Field(
        default="reject",
        title="Concurrency Policy",
        description="What to do when an operation is requested while another is running",
        json_schema_extra={"ui_order": 21},
    )


class AppSettingsMixin:
    """Settings for application identity and disk layout.

    Mixin class that provides:
    - Application name and workspace directory
    - Path expansion for workspace_dir
    - Workspace directory creation
    - Derived path properties (logs, exports)
    """

    app_name: str = Field(
        default="azcli_inventory",
        title="App Name",
        description="Application name, also used for the settings directory",
        json_schema_extra={"ui_order": 200},
    )

    workspace_dir: Path = Field(
        default_factory=lambda: Path.home() / ".azcli_inventory",
        title="Workspace Directory",
        description="Directory for activity logs and exported snapshots",
        json_schema_extra={"ui_order": 201},
    )

    @field_validator("workspace_dir", mode="before")
    @classmethod
    def expand_path(cls, v: str | Path) -> Path:
        """Expand ~ and environment variables in paths."""
        if isinstance(v, str):
            return Path(v).expanduser()
        return v

    def ensure_workspace_exists(self) -> None:
        """Create workspace directory if it doesn't exist."""
        self.workspace_dir.mkdir(parents=True, exist_ok=True)

    @property
    def logs_dir(self) -> Path:
        """Directory for saved activity logs."""
        return self.workspace_dir / "logs"

    @property
    def exports_dir(self) -> Path:
        """Directory for exported inventory snapshots."""
        return self.workspace_dir / "exports"


class CLISettingsMixin:
    """Settings for CLI/UI configuration.

    Note: This is a mixin, not a Settings subclass, to avoid
    MRO issues when composed with other settings classes.
    """

    log_level: Literal["debug", "info", "warning", "error"] = Field(
        default="warning",
        title="Log Level",
        description="Logging verbosity level",
        json_schema_extra={"ui_order": 50},
    )
    log_format: Literal["console", "json"] = Field(
        default="console",
        title="Log Format",
        description="Log output format (console for dev, json for production)",
        json_schema_extra={"ui_order": 51},
    )

    log_activity: bool = Field(
        default=False,
        title="Log Activity",
        description="Save the diagnostic log to the workspace on exit",
        json_schema_extra={"ui_order": 30},
    )
