"""Pydantic models for swayr's config.toml."""

from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator


DEFAULT_MENU_ARGS = [
    "--show=dmenu",
    "--allow-markup",
    "--allow-images",
    "--insensitive",
    "--cache-file=/dev/null",
    "--parse-search",
    "--height=40%",
    "--prompt={prompt}",
]

DEFAULT_ICON_DIRS = [
    "/usr/share/icons/hicolor/scalable/apps",
    "/usr/share/icons/hicolor/128x128/apps",
    "/usr/share/icons/hicolor/64x64/apps",
    "/usr/share/icons/hicolor/48x48/apps",
    "/usr/share/icons/Adwaita/64x64/apps",
    "/usr/share/icons/Adwaita/48x48/apps",
    "/usr/share/pixmaps",
]

DEFAULT_MIN_WIDTH_TABLE = [
    (800, 400),
    (1024, 500),
    (1280, 600),
    (1400, 680),
    (1440, 700),
    (1600, 780),
    (1680, 780),
    (1920, 920),
    (2048, 980),
    (2560, 1000),
    (3440, 1200),
    (3840, 1280),
    (4096, 1400),
    (4480, 1600),
    (7680, 2400),
]


class MenuConfig(BaseModel):
    """External menu program invocation."""

    executable: str = Field(default="wofi", description="Menu program, e.g. wofi or rofi")
    args: List[str] = Field(
        default_factory=lambda: list(DEFAULT_MENU_ARGS),
        description="Arguments; {prompt} is replaced with the menu prompt",
    )

    def build_argv(self, prompt: str) -> List[str]:
        return [self.executable] + [arg.replace("{prompt}", prompt) for arg in self.args]


class FormatConfig(BaseModel):
    """Display templates for menu entries."""

    output_format: str = (
        "{indent}<b>Output {name}</b>    <span alpha=\"20000\">({id})</span>"
    )
    workspace_format: str = (
        "{indent}<b>Workspace {name} [{layout}]</b> on output {output_name}    "
        "<span alpha=\"20000\">({id})</span>"
    )
    container_format: str = (
        "{indent}<b>Container [{layout}]</b> <i>{marks}</i> on workspace {workspace_name}    "
        "<span alpha=\"20000\">({id})</span>"
    )
    window_format: str = (
        "img:{app_icon}:text:{indent}<i>{app_name}</i> — "
        "{urgency_start}<b>“{title}”</b>{urgency_end} <i>{marks}</i> "
        "on workspace {workspace_name} / {output_name}    "
        "<span alpha=\"20000\">({id})</span>"
    )
    indent: str = "    "
    html_escape: bool = True
    urgency_start: str = "<span background=\"darkred\" foreground=\"yellow\">"
    urgency_end: str = "</span>"
    icon_dirs: List[str] = Field(default_factory=lambda: list(DEFAULT_ICON_DIRS))
    icon_size: int = Field(default=48, gt=0, description="Preferred icon theme size in pixels")
    icon_theme: Optional[str] = Field(default=None, description="XDG icon theme, pyxdg default if unset")
    fallback_icon: Optional[str] = None


class LayoutConfig(BaseModel):
    """Auto-tiling settings."""

    auto_tile: bool = False
    auto_tile_min_window_width_per_output_width: List[Tuple[int, int]] = Field(
        default_factory=lambda: list(DEFAULT_MIN_WIDTH_TABLE),
        description="Pairs of [output width, minimum window width] in pixels",
    )

    @field_validator("auto_tile_min_window_width_per_output_width")
    @classmethod
    def validate_table(cls, v: List[Tuple[int, int]]) -> List[Tuple[int, int]]:
        for output_width, min_width in v:
            if output_width <= 0 or min_width <= 0:
                raise ValueError(
                    f"Widths must be positive, got [{output_width}, {min_width}]"
                )
        return v

    def min_width_table(self) -> Dict[int, int]:
        """Output width -> minimum window width lookup."""
        return dict(self.auto_tile_min_window_width_per_output_width)


class FocusConfig(BaseModel):
    """Focus recency settings."""

    lockin_delay: int = Field(
        default=0,
        ge=0,
        description="Milliseconds a focus must persist before it counts for LRU order",
    )


class MiscConfig(BaseModel):
    """Assorted behavior switches."""

    auto_nop_delay: Optional[int] = Field(
        default=None,
        ge=1,
        description="Milliseconds of inactivity after which a prev/next sequence ends",
    )
    seq_inhibit: bool = Field(
        default=False,
        description="Inhibit focus recency updates during prev/next sequences",
    )


class SwayrConfig(BaseModel):
    """Complete swayr configuration."""

    menu: MenuConfig = Field(default_factory=MenuConfig)
    format: FormatConfig = Field(default_factory=FormatConfig)
    layout: LayoutConfig = Field(default_factory=LayoutConfig)
    focus: FocusConfig = Field(default_factory=FocusConfig)
    misc: MiscConfig = Field(default_factory=MiscConfig)
