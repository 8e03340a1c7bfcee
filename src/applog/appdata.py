"""
Per-user application data and log directories.

Layout under the platform base directory::

    Windows  %LOCALAPPDATA%/<App>/{data,logs}
    macOS    ~/Library/Application Support/<App>/{data,logs}
    Linux    ~/.config/<App>/{data,logs}
"""

from __future__ import annotations

import shutil
from importlib import resources as importlib_resources
from importlib.resources.abc import Traversable
from pathlib import Path

from platformdirs import PlatformDirs

from applog.config.app import DEFAULT_APP_NAME
from applog.logging import get_logger

logger = get_logger(__name__)


class AppDataManager:
    """Resolves per-user directories and seeds bundled default data files.

    Args:
        app_name: Directory name for the application. Blank values keep the
            default name.
        base_directory: Overrides the platform base directory.
        resources: Root that bundled default files are read from. Defaults to
            the ``applog`` package.
    """

    def __init__(
        self,
        app_name: str | None = None,
        *,
        base_directory: str | Path | None = None,
        resources: Traversable | Path | None = None,
    ) -> None:
        self._app_name = DEFAULT_APP_NAME
        self.app_name = app_name
        self._base_directory = Path(base_directory) if base_directory is not None else None
        self._resources = resources

    @property
    def app_name(self) -> str:
        return self._app_name

    @app_name.setter
    def app_name(self, name: str | None) -> None:
        if name is not None and name.strip():
            self._app_name = name.strip()

    @property
    def base_directory(self) -> Path:
        if self._base_directory is not None:
            return self._base_directory
        return Path(PlatformDirs(appname=self._app_name, appauthor=False).user_config_dir)

    def user_data_directory(self) -> Path:
        """Directory for user-modifiable data files, created on demand."""
        return self._ensure_directory(self.base_directory / "data")

    def logs_directory(self) -> Path:
        """Directory for log files, created on demand."""
        return self._ensure_directory(self.base_directory / "logs")

    def data_file_path(self, file_name: str) -> Path:
        return self.user_data_directory() / file_name

    def initialize_user_data_files(self, *resource_files: str) -> None:
        """Copy bundled resources into the data directory unless already present.

        Existing files are never overwritten so user edits survive upgrades.
        """
        data_dir = self.user_data_directory()
        for resource_file in resource_files:
            target = data_dir / Path(resource_file).name
            self._initialize_data_file(resource_file, target)
        logger.info(f"User data files initialized in: {data_dir}")

    def _initialize_data_file(self, resource_file: str, target: Path) -> None:
        if target.exists():
            return
        source = self._resource_root().joinpath(*Path(resource_file.lstrip("/")).parts)
        if not source.is_file():
            logger.warning(f"Resource not found: {resource_file}")
            return
        try:
            with source.open("rb") as src, open(target, "xb") as dst:
                shutil.copyfileobj(src, dst)
        except FileExistsError:
            return
        except OSError:
            logger.exception(f"Failed to initialize data file: {target}")
            return
        logger.info(f"Initialized data file: {target}")

    def _resource_root(self) -> Traversable | Path:
        if self._resources is not None:
            return self._resources
        return importlib_resources.files("applog")

    @staticmethod
    def _ensure_directory(directory: Path) -> Path:
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError:
            logger.exception(f"Failed to create directory: {directory}")
        return directory
