from dataclasses import asdict
from typing import Optional, TypeVar, Type, Dict, Union, Any, get_type_hints, get_origin, get_args
import json
import os
import sys
import appdirs

from ..utils.log_setup import logger
from ..utils.config_setup import AnalysisConfig

T = TypeVar('T')

ANALYSIS_CONFIG = 'analysis'


class ConfigManager:
    _instance = None  # Single shared instance
    _configs: Dict[str, Any] = {}  # Shared configuration cache

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(ConfigManager, cls).__new__(cls)

            if getattr(sys, 'frozen', False):
                cls._instance._bundle_dir = os.path.join(sys._MEIPASS, 'LC_Phase')
            else:
                cls._instance._bundle_dir = os.path.dirname(os.path.dirname(__file__))

            cls._instance._user_config_dir = appdirs.user_config_dir(
                appname="LCPhase",
                appauthor="LCPhase"
            )
            os.makedirs(cls._instance._user_config_dir, exist_ok=True)

            bundle_config_dir = os.path.join(cls._instance._bundle_dir, 'config')
            if not os.path.exists(bundle_config_dir):
                raise FileNotFoundError(f"Bundled config directory not found at {bundle_config_dir}")

        return cls._instance

    @property
    def user_config_dir(self) -> str:
        return self._user_config_dir

    def _last_used_path(self, config_name: str) -> str:
        return os.path.join(self._user_config_dir, f"last_used_{config_name}_config.json")

    def _load_json_config(self, config_name: str, use_last_used: bool = False) -> dict:
        """Load JSON config from the user's last used file or the bundled default."""
        config_path = None

        if use_last_used and os.path.exists(self._last_used_path(config_name)):
            config_path = self._last_used_path(config_name)

        if not config_path:
            config_path = os.path.join(self._bundle_dir, 'config', f"{config_name}_config.json")

        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Config file not found at {config_path}")

        try:
            with open(config_path, 'r') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Error parsing config file {config_path}: {str(e)}")

    def _deserialize_dataclass(self, cls: Type[T], data: Dict[str, Any]) -> T:
        """Convert a dictionary to a dataclass instance, ignoring unknown keys."""
        if data is None:
            return None

        type_hints = get_type_hints(cls)
        kwargs = {}
        for field_name, field_value in data.items():
            if field_name not in type_hints:
                logger.debug(f"Ignoring unknown config field '{field_name}' for {cls.__name__}")
                continue
            kwargs[field_name] = self._process_field(type_hints[field_name], field_value)

        return cls(**kwargs)

    def _process_field(self, field_type: Type, field_value: Any) -> Any:
        """Process a field value based on its declared type."""
        if field_value is None:
            return None

        if get_origin(field_type) is Union:
            # Optional[X]: use the first non-None member
            members = [arg for arg in get_args(field_type) if arg is not type(None)]
            field_type = members[0] if members else field_type

        if hasattr(field_type, '__dataclass_fields__') and isinstance(field_value, dict):
            return self._deserialize_dataclass(field_type, field_value)
        if field_type is float and isinstance(field_value, int) and not isinstance(field_value, bool):
            return float(field_value)
        return field_value

    def get_config(self, config_name: str, config_class: Type[T],
                   use_last_used: bool = True) -> T:
        """
        Get configuration as a dataclass instance.

        Args:
            config_name: Name of the configuration
            config_class: Dataclass type to instantiate
            use_last_used: Whether to use the last used config if available

        Returns:
            An instance of the config_class
        """
        if config_name in self._configs:
            return self._configs[config_name]

        config_data = self._load_json_config(config_name, use_last_used=use_last_used)
        config = self._deserialize_dataclass(config_class, config_data)
        self._configs[config_name] = config

        return config

    def get_analysis_config(self) -> AnalysisConfig:
        return self.get_config(ANALYSIS_CONFIG, AnalysisConfig)

    def save_config(self, config_name: str, is_last_used: bool = False) -> Optional[str]:
        """
        Save current config to a file in the user config directory.

        Args:
            config_name: Name of the config to save
            is_last_used: If True, save as last_used config, otherwise as regular config

        Returns:
            The path written, or None when nothing was saved
        """
        config = self._configs.get(config_name)
        if not config:
            logger.error(f"No config found for {config_name}, cannot save")
            return None

        filename = f"{'last_used_' if is_last_used else ''}{config_name}_config.json"
        save_path = os.path.join(self._user_config_dir, filename)

        try:
            with open(save_path, 'w') as f:
                json.dump(asdict(config), f, indent=2)
            logger.info(f"Saved config to {save_path}")
        except OSError as e:
            logger.error(f"Error saving config to {save_path}: {str(e)}")
            return None
        return save_path

    def update_config(self, config_name: str, updates: dict) -> None:
        """
        Update specific fields in a cached config and persist it as last used.

        Args:
            config_name: Name of the config to update
            updates: Nested dictionary of updates, e.g. {"thresholds": {"sampling_stride": 10}}
        """
        config = self._configs.get(config_name)
        if not config:
            logger.error(f"No config found for {config_name}, cannot update")
            return

        self._configs[config_name] = self.with_overrides(config, updates)

        self.save_config(config_name, is_last_used=True)

    def with_overrides(self, config: T, updates: dict) -> T:
        """Return a copy of config with nested updates applied, leaving the cache untouched."""
        config_dict = asdict(config)
        self._update_dict_recursively(config_dict, updates)
        return self._deserialize_dataclass(type(config), config_dict)

    def _update_dict_recursively(self, target: dict, source: dict) -> None:
        for key, value in source.items():
            if key not in target:
                logger.warning(f"Unknown config key '{key}' ignored")
                continue
            if isinstance(value, dict) and isinstance(target[key], dict):
                self._update_dict_recursively(target[key], value)
            else:
                target[key] = value

    def reset_config(self, config_name: str, config_class: Type[T]) -> T:
        """
        Reset config to the bundled defaults, removing the last used file.

        Returns:
            The reset config instance
        """
        self._configs.pop(config_name, None)

        last_used_path = self._last_used_path(config_name)
        if os.path.exists(last_used_path):
            try:
                os.remove(last_used_path)
                logger.info(f"Removed last used config file {last_used_path}")
            except OSError as e:
                logger.error(f"Failed to remove {last_used_path}: {str(e)}")

        return self.get_config(config_name, config_class, use_last_used=False)

    def refresh_configs(self):
        """Force reload of all configs from disk"""
        self._configs.clear()
        logger.debug("Config cache cleared, configs will be reloaded from disk")
