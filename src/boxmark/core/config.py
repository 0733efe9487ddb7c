"""Configuration management for Boxmark."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

# Default configuration file path
DEFAULT_CONFIG_PATH = Path("config.yaml")


@dataclass
class AppConfig:
    """
    Application configuration settings.

    Stores editor tuning values and user preferences.
    """

    default_directory: str = ""
    default_label: str = "object"
    min_box_size: float = 10.0  # Minimum annotation width/height in image pixels
    draw_threshold: float = 10.0  # Minimum drag size in canvas pixels to create a box
    move_threshold: float = 3.0  # Drag distance in canvas pixels before a move starts
    handle_size: float = 8.0
    resize_debounce_ms: int = 200
    render_debounce_ms: int = 100
    resize_threshold: float = 5.0  # Container size change needed to refit
    min_container_width: int = 400
    min_container_height: int = 300
    label_font_size: int = 12
    autosave: bool = False  # Save before switching images
    max_recent_paths: int = 10  # Number of recent images to remember (0 = disabled)
    recent_paths: list[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary for serialization."""
        return {
            "defaultDirectory": self.default_directory,
            "defaultLabel": self.default_label,
            "minBoxSize": self.min_box_size,
            "drawThreshold": self.draw_threshold,
            "moveThreshold": self.move_threshold,
            "handleSize": self.handle_size,
            "resizeDebounceMs": self.resize_debounce_ms,
            "renderDebounceMs": self.render_debounce_ms,
            "resizeThreshold": self.resize_threshold,
            "minContainerWidth": self.min_container_width,
            "minContainerHeight": self.min_container_height,
            "labelFontSize": self.label_font_size,
            "autosave": self.autosave,
            "maxRecentPaths": self.max_recent_paths,
            "recentPaths": self.recent_paths,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> AppConfig:
        """Create config from dictionary."""
        return cls(
            default_directory=data.get("defaultDirectory", ""),
            default_label=data.get("defaultLabel", "object"),
            min_box_size=data.get("minBoxSize", 10.0),
            draw_threshold=data.get("drawThreshold", 10.0),
            move_threshold=data.get("moveThreshold", 3.0),
            handle_size=data.get("handleSize", 8.0),
            resize_debounce_ms=data.get("resizeDebounceMs", 200),
            render_debounce_ms=data.get("renderDebounceMs", 100),
            resize_threshold=data.get("resizeThreshold", 5.0),
            min_container_width=data.get("minContainerWidth", 400),
            min_container_height=data.get("minContainerHeight", 300),
            label_font_size=data.get("labelFontSize", 12),
            autosave=data.get("autosave", False),
            max_recent_paths=data.get("maxRecentPaths", 10),
            recent_paths=data.get("recentPaths", []),
        )


class ConfigManager:
    """
    Manager for loading and saving application configuration.

    Handles YAML serialization and provides a clean interface
    for configuration access.
    """

    def __init__(self, config_path: Path = DEFAULT_CONFIG_PATH) -> None:
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to the configuration file
        """
        self.config_path = config_path
        self._config: Optional[AppConfig] = None

    @property
    def config(self) -> AppConfig:
        """Get the current configuration, loading if necessary."""
        if self._config is None:
            self._config = self.load()
        return self._config

    def load(self) -> AppConfig:
        """
        Load configuration from file.

        Returns:
            AppConfig instance with loaded or default values
        """
        if not self.config_path.exists():
            logger.info(f"Config file not found at {self.config_path}, using defaults")
            return AppConfig()

        try:
            with open(self.config_path, "r") as f:
                data = yaml.safe_load(f) or {}
            logger.info(f"Loaded configuration from {self.config_path}")
            return AppConfig.from_dict(data)
        except yaml.YAMLError as e:
            logger.error(f"Error parsing config file: {e}")
            return AppConfig()
        except Exception as e:
            logger.error(f"Error loading config: {e}")
            return AppConfig()

    def save(self, config: Optional[AppConfig] = None) -> bool:
        """
        Save configuration to file.

        Args:
            config: Configuration to save, or use current config

        Returns:
            True if save was successful
        """
        if config is not None:
            self._config = config

        if self._config is None:
            logger.warning("No configuration to save")
            return False

        try:
            with open(self.config_path, "w") as f:
                yaml.dump(self._config.to_dict(), f, default_flow_style=False)
            logger.info(f"Saved configuration to {self.config_path}")
            return True
        except Exception as e:
            logger.error(f"Error saving config: {e}")
            return False

    def update(self, **kwargs: Any) -> None:
        """
        Update configuration with new values.

        Args:
            **kwargs: Key-value pairs to update
        """
        config = self.config
        for key, value in kwargs.items():
            if hasattr(config, key):
                setattr(config, key, value)
            else:
                logger.warning(f"Unknown config key: {key}")
        self.save()

    def add_recent_path(self, path: str) -> None:
        """
        Move a path to the front of the recent paths list.

        Args:
            path: Image path that was opened
        """
        config = self.config
        if config.max_recent_paths <= 0:
            return

        recent = [p for p in config.recent_paths if p != path]
        recent.insert(0, path)
        self.update(recent_paths=recent[:config.max_recent_paths])
