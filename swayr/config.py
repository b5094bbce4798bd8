"""Configuration loading and hot reload for swayrd.

Loads config.toml with tomllib, validates it with pydantic and watches the
config directory with watchdog so edits take effect without a restart.
"""

import asyncio
import logging
import tomllib
from pathlib import Path
from typing import Callable, Optional

from pydantic import ValidationError
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .constants import ConfigPaths
from .models.config import SwayrConfig

logger = logging.getLogger(__name__)


def get_config_file_path() -> Path:
    """Get the config file to load.

    The user config wins; the system-wide file is used only when the user has
    none. The user path is returned even if missing so it can be watched.
    """
    if not ConfigPaths.CONFIG_FILE.exists() and ConfigPaths.SYSTEM_CONFIG_FILE.exists():
        return ConfigPaths.SYSTEM_CONFIG_FILE
    return ConfigPaths.CONFIG_FILE


def parse_config(path: Path) -> SwayrConfig:
    """Parse and validate a config file.

    Args:
        path: Path to config.toml

    Returns:
        Validated SwayrConfig

    Raises:
        tomllib.TOMLDecodeError: If TOML syntax is invalid
        pydantic.ValidationError: If values are invalid
        OSError: If the file cannot be read
    """
    with open(path, "rb") as f:
        data = tomllib.load(f)
    return SwayrConfig.model_validate(data)


def load_config(path: Optional[Path] = None) -> SwayrConfig:
    """Load the swayr configuration, falling back to defaults.

    A missing or invalid file never prevents the daemon from starting.

    Args:
        path: Config file path (default: see get_config_file_path)

    Returns:
        SwayrConfig
    """
    path = path or get_config_file_path()

    if not path.exists():
        logger.info(f"No config file at {path}, using defaults")
        return SwayrConfig()

    try:
        config = parse_config(path)
        logger.info(f"Loaded config from {path}")
        return config
    except tomllib.TOMLDecodeError as e:
        logger.error(f"Invalid TOML in {path}: {e}, using defaults")
    except ValidationError as e:
        logger.error(f"Invalid config values in {path}: {e}, using defaults")
    except OSError as e:
        logger.error(f"Cannot read {path}: {e}, using defaults")
    return SwayrConfig()


class ConfigHolder:
    """Holds the active configuration and swaps it on reload."""

    def __init__(self, config: SwayrConfig, path: Optional[Path] = None):
        self.config = config
        self.path = path or get_config_file_path()

    def reload(self) -> bool:
        """Reload from disk, keeping the current config if the new one is invalid.

        Returns:
            True if a new config was activated
        """
        if not self.path.exists():
            logger.info(f"Config file {self.path} removed, keeping current config")
            return False
        try:
            self.config = parse_config(self.path)
        except (tomllib.TOMLDecodeError, ValidationError, OSError) as e:
            logger.error(f"Config reload failed, keeping previous config: {e}")
            return False
        logger.info(f"Reloaded config from {self.path}")
        return True


class DebouncedReloadHandler(FileSystemEventHandler):
    """File system event handler with debounced reload callback.

    Editors often write a file several times in a row on save; only the last
    change within the debounce window triggers a reload.
    """

    def __init__(self, callback: Callable[[], None], debounce_ms: int = 500, target_filename: Optional[str] = None):
        """Initialize debounced reload handler.

        Args:
            callback: Function to call after debounce period
            debounce_ms: Debounce timeout in milliseconds
            target_filename: If set, only trigger on events for this filename
        """
        super().__init__()
        self.callback = callback
        self.debounce_seconds = debounce_ms / 1000
        self.target_filename = target_filename
        self._debounce_task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def set_event_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        """Set the asyncio event loop for scheduling callbacks.

        Args:
            loop: Asyncio event loop
        """
        self._loop = loop

    def _should_trigger(self, event) -> bool:
        if event.is_directory:
            return False
        if self.target_filename:
            event_path = getattr(event, "dest_path", None) or event.src_path
            return Path(event_path).name == self.target_filename
        return True

    def _schedule_callback(self) -> None:
        # Runs on the loop thread via call_soon_threadsafe
        if self._debounce_task and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = asyncio.ensure_future(self._debounced_callback())

    async def _debounced_callback(self) -> None:
        try:
            await asyncio.sleep(self.debounce_seconds)
        except asyncio.CancelledError:
            return
        try:
            self.callback()
        except Exception as e:
            logger.error(f"Error in reload callback: {e}", exc_info=True)

    def on_any_event(self, event) -> None:
        """Handle created/modified/moved events from the observer thread."""
        if event.event_type not in ("created", "modified", "moved"):
            return
        if not self._should_trigger(event):
            return
        if self._loop is None:
            logger.warning("No event loop set for debounced handler, calling immediately")
            self.callback()
            return
        self._loop.call_soon_threadsafe(self._schedule_callback)


class ConfigWatcher:
    """File system watcher for config.toml with auto-reload."""

    def __init__(self, holder: ConfigHolder, on_reload: Optional[Callable[[SwayrConfig], None]] = None, debounce_ms: int = 500):
        """Initialize config watcher.

        Args:
            holder: ConfigHolder whose file is watched and reloaded
            on_reload: Called with the new config after a successful reload
            debounce_ms: Debounce timeout in milliseconds
        """
        self.holder = holder
        self.on_reload = on_reload
        self.observer = Observer()
        self.handler = DebouncedReloadHandler(
            self._reload, debounce_ms, target_filename=holder.path.name
        )
        self._started = False

    def _reload(self) -> None:
        if self.holder.reload() and self.on_reload:
            self.on_reload(self.holder.config)

    def set_event_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self.handler.set_event_loop(loop)

    def start(self) -> None:
        """Start watching the config file.

        Watches the parent directory since some editors use atomic save
        (create temp file + rename) which doesn't trigger inotify on the file itself.
        """
        if self._started:
            logger.warning("Config watcher already started")
            return

        watch_dir = self.holder.path.parent
        if not watch_dir.is_dir():
            logger.info(f"Config directory {watch_dir} does not exist, not watching")
            return

        self.observer.schedule(self.handler, str(watch_dir), recursive=False)
        self.observer.start()
        self._started = True
        logger.info(f"Started watching {self.holder.path} for modifications")

    def stop(self) -> None:
        """Stop watching for file modifications."""
        if not self._started:
            return

        self.observer.stop()
        self.observer.join(timeout=5.0)
        self._started = False
        logger.info("Stopped config watcher")
