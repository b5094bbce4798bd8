"""Constants shared by the swayr daemon and client.

Centralizes filesystem paths and special names used when talking to sway.
"""

import os
from pathlib import Path
from typing import Final


class ConfigPaths:
    """Configuration file locations."""

    CONFIG_DIR: Final[Path] = (
        Path(os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config") / "swayr"
    )
    CONFIG_FILE: Final[Path] = CONFIG_DIR / "config.toml"
    SYSTEM_CONFIG_FILE: Final[Path] = Path("/etc/xdg/swayr/config.toml")


class SwayNames:
    """Names with special meaning in the sway tree or in swayr commands."""

    # Hidden workspace used as a parking area while re-tiling
    SCRATCH_WORKSPACE: Final[str] = "✨"
    SCRATCHPAD_NAMES: Final[tuple[str, ...]] = ("__i3", "__i3_scratch")
    MOVE_TARGET_MARK: Final[str] = "__SWAYR_MOVE_TARGET__"


# Delay between re-insertion steps so sway can settle the tree
RELAYOUT_STEP_DELAY: Final[float] = 0.025

CONNECT_TIMEOUT: Final[float] = 2.0


def get_socket_path() -> Path:
    """Get the daemon socket path for the current sway session.

    One daemon runs per Wayland display, so the display name is part of the path.
    """
    runtime_dir = os.environ.get("XDG_RUNTIME_DIR") or "/tmp"
    display = os.environ.get("WAYLAND_DISPLAY") or "unknown"
    return Path(runtime_dir) / f"swayr-{display}.sock"
