"""Shared constants for azcli-inventory."""

# Content display truncation limits
CONTENT_PREVIEW_LENGTH = 200

# Value reported when no strategy could determine the caller's address
IP_NOT_DETECTED = "Not detected"
IP_ERROR = "Error"

INITIAL_STATUS = "Ready to login to Azure CLI"
CLI_INSTALL_HINT = "Make sure Azure CLI (az) is installed on your system."


def truncate(text: str, max_length: int = CONTENT_PREVIEW_LENGTH) -> str:
    """Truncate text with ellipsis if it exceeds max_length."""
    if len(text) > max_length:
        return text[:max_length] + "..."
    return text
