"""App id to icon file resolution from desktop entries.

Desktop entries are read with pyxdg; icon names are looked up in the
configured ``icon_dirs`` first and then through the XDG icon theme.
"""

import logging
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from xdg import BaseDirectory
from xdg.DesktopEntry import DesktopEntry
from xdg.Exceptions import Error as XdgError
from xdg.IconTheme import getIconPath

from ..models.config import FormatConfig

logger = logging.getLogger(__name__)

ICON_EXTENSIONS = (".png", ".svg", ".xpm")
DEFAULT_ICON_SIZE = 48
# org.gnome.eog.desktop belongs to app id "eog"
REV_DOMAIN_NAME_RX = re.compile(r"^(?:[a-zA-Z0-9-]+\.)+([a-zA-Z0-9-]+)$")


def desktop_entry_dirs() -> List[Path]:
    """``applications`` directories below every XDG data dir, user dir first."""
    return [Path(data_dir) / "applications" for data_dir in BaseDirectory.xdg_data_dirs]


def find_icon(
    icon_name: str,
    icon_dirs: Iterable[str],
    size: int = DEFAULT_ICON_SIZE,
    theme: Optional[str] = None,
) -> Optional[Path]:
    """Find the icon file for an ``Icon=`` value.

    Args:
        icon_name: Absolute path or bare icon name (e.g. "org.gnome.eog")
        icon_dirs: Directories searched before the icon theme
        size: Preferred theme icon size in pixels
        theme: Icon theme name, pyxdg's default theme if None

    Returns:
        Path to the icon file or None if not found
    """
    if not icon_name:
        return None

    candidate = Path(icon_name)
    if candidate.is_absolute():
        return candidate if candidate.is_file() else None

    for icon_dir in icon_dirs:
        for ext in ICON_EXTENSIONS:
            icon_path = Path(icon_dir) / f"{icon_name}{ext}"
            if icon_path.is_file():
                return icon_path

    themed = getIconPath(icon_name, size, theme)
    if themed:
        return Path(themed)
    return None


class AppIconResolver:
    """Lazily built map from app id (or X11 class) to icon file."""

    def __init__(
        self,
        icon_dirs: List[str],
        entry_dirs: Optional[List[Path]] = None,
        icon_size: int = DEFAULT_ICON_SIZE,
        icon_theme: Optional[str] = None,
    ):
        self.icon_dirs = icon_dirs
        self.entry_dirs = entry_dirs
        self.icon_size = icon_size
        self.icon_theme = icon_theme
        self._map: Optional[Dict[str, Path]] = None

    @classmethod
    def from_config(cls, config: FormatConfig) -> "AppIconResolver":
        return cls(config.icon_dirs, icon_size=config.icon_size, icon_theme=config.icon_theme)

    def matches_config(self, config: FormatConfig) -> bool:
        """True if the resolver was built for the same icon settings."""
        return (self.icon_dirs, self.icon_size, self.icon_theme) == (
            config.icon_dirs,
            config.icon_size,
            config.icon_theme,
        )

    def _read_entry(self, entry_path: Path, icons: Dict[str, Path]) -> None:
        try:
            entry = DesktopEntry(str(entry_path))
        except (XdgError, OSError) as e:
            logger.debug(f"Skipping desktop entry {entry_path}: {e}")
            return

        icon = find_icon(entry.getIcon(), self.icon_dirs, self.icon_size, self.icon_theme)
        if icon is None:
            return

        wm_class = entry.getStartupWMClass()
        if wm_class:
            icons[wm_class] = icon
        rev_domain = REV_DOMAIN_NAME_RX.match(entry_path.stem)
        if rev_domain:
            icons[rev_domain.group(1)] = icon
        icons[entry_path.stem] = icon

    def build(self) -> Dict[str, Path]:
        icons: Dict[str, Path] = {}
        # Entries from earlier (user) directories win over system ones
        directories = self.entry_dirs if self.entry_dirs is not None else desktop_entry_dirs()
        for directory in reversed(directories):
            if not directory.is_dir():
                continue
            for entry_path in sorted(directory.glob("*.desktop")):
                self._read_entry(entry_path, icons)
        logger.debug(f"Resolved icons for {len(icons)} app ids")
        return icons

    def lookup(self, app_name: str) -> Optional[Path]:
        if self._map is None:
            self._map = self.build()
        return self._map.get(app_name)
