"""
Configuration management for the recall engine.

Settings come from config.yaml, then RECALL_* environment variables on top.
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

ENV_PREFIX = 'RECALL_'

SECTIONS = ('embedding', 'vector_store', 'search', 'resilience', 'paths', 'metrics')

DEFAULTS: Dict[str, Dict[str, Any]] = {
    'embedding': {
        'provider': 'auto',
        'model': 'all-MiniLM-L6-v2',
        'device': None,
        'cache_size': 1000,
        'requests_per_second': 0,
        'timeout': 20.0,
    },
    'vector_store': {
        'type': 'local',
        'collection': 'experiences',
        'timeout': 10.0,
    },
    'search': {
        'default_limit': None,
        'snippet_length': 200,
        'vector_threshold': 0.4,
    },
    'resilience': {
        'embedding_timeout': 20.0,
        'search_timeout': 10.0,
        'failure_threshold': 3,
        'reset_timeout': 30.0,
    },
    'paths': {
        'records': 'data/experiences.jsonl',
        'vectors': 'data/vectors.json',
    },
    'metrics': {
        'enabled': False,
        'log_dir': 'data/metrics',
    },
}


class Config:
    """
    Effective settings for one process.

    Priority order:
    1. CLI arguments (handled by the entry points)
    2. ENV variables (RECALL_<SECTION>_<KEY>)
    3. config.yaml values
    4. Code defaults
    """

    def __init__(self, config_dict: Optional[Dict[str, Any]] = None, config_path: Optional[Path] = None):
        """
        Build from an already-parsed mapping.

        Args:
            config_dict: Configuration dictionary, merged over the defaults
            config_path: Where the mapping was read from, if anywhere
        """
        self._config = self._merge_defaults(config_dict or {})
        self._config_path = config_path

    @staticmethod
    def _merge_defaults(config_dict: Dict[str, Any]) -> Dict[str, Any]:
        merged = copy.deepcopy(DEFAULTS)
        for section, values in config_dict.items():
            if isinstance(values, dict):
                merged.setdefault(section, {}).update(values)
            else:
                merged[section] = values
        return merged

    @classmethod
    def load(
        cls,
        config_path: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
        dotenv: bool = True
    ) -> 'Config':
        """
        Read config.yaml and layer environment overrides on top.

        Args:
            config_path: Path to config.yaml (default: nearest config.yaml upward, then cwd)
            env: Environment mapping (defaults to os.environ)
            dotenv: Load a .env file into the environment first

        Returns:
            Config instance

        Raises:
            ValueError: If the YAML is invalid or a known setting has the wrong type
        """
        if dotenv and env is None:
            load_dotenv()
        env = os.environ if env is None else env

        if config_path is None:
            current = Path.cwd()
            while current.parent != current:
                potential_config = current / "config.yaml"
                if potential_config.exists():
                    config_path = potential_config
                    break
                current = current.parent
            if config_path is None:
                config_path = Path("config.yaml")
        config_path = Path(config_path)

        config_dict: Dict[str, Any] = {}
        if config_path.exists():
            try:
                with open(config_path, 'r', encoding='utf-8') as f:
                    config_dict = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                logger.error(f"Invalid YAML in config file {config_path}: {e}")
                raise ValueError(f"Invalid YAML syntax in config file: {e}")
            if not isinstance(config_dict, dict):
                raise ValueError(f"Config file {config_path} must contain a mapping")
            cls._validate_config(config_dict)
            logger.info(f"Loaded configuration from {config_path}")
        else:
            logger.info(f"Config file not found at {config_path}. Using defaults and ENV variables.")

        config_dict = cls._apply_env_overrides(config_dict, env)
        return cls(config_dict, config_path)

    @staticmethod
    def _validate_config(config_dict: Dict[str, Any]) -> None:
        """
        Reject sections and known keys with the wrong shape.

        Raises:
            ValueError: On the first invalid section or value
        """
        for section in SECTIONS:
            if section not in config_dict:
                logger.debug(f"Config section '{section}' not found, will use defaults")
            elif not isinstance(config_dict[section], dict):
                raise ValueError(f"Config section '{section}' must be a mapping")

        embedding = config_dict.get('embedding', {})
        if 'cache_size' in embedding and not isinstance(embedding['cache_size'], int):
            raise ValueError(f"embedding.cache_size must be an integer, got {type(embedding['cache_size'])}")

        search = config_dict.get('search', {})
        limit = search.get('default_limit')
        if limit is not None and (not isinstance(limit, int) or limit < 0):
            raise ValueError(f"search.default_limit must be a non-negative integer, got {limit!r}")
        threshold = search.get('vector_threshold', 0.4)
        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)) or not 0 <= threshold <= 1:
            raise ValueError(f"search.vector_threshold must be a number between 0 and 1, got {threshold!r}")

        resilience = config_dict.get('resilience', {})
        for key in ('embedding_timeout', 'search_timeout', 'reset_timeout'):
            if key in resilience:
                value = resilience[key]
                if not isinstance(value, (int, float)) or value <= 0:
                    raise ValueError(f"resilience.{key} must be a positive number, got {value!r}")

        vector_store = config_dict.get('vector_store', {})
        if vector_store.get('type') not in (None, 'local', 'remote'):
            raise ValueError(f"vector_store.type must be 'local' or 'remote', got {vector_store.get('type')!r}")

    @classmethod
    def _apply_env_overrides(cls, config_dict: Dict[str, Any], env: Mapping[str, str]) -> Dict[str, Any]:
        """
        Copy RECALL_<SECTION>_<KEY> variables into the matching sections.

        ENV format: RECALL_<SECTION>_<KEY>
        Examples:
        - RECALL_EMBEDDING_PROVIDER -> embedding.provider
        - RECALL_VECTOR_STORE_COLLECTION -> vector_store.collection
        - RECALL_SEARCH_DEFAULT_LIMIT -> search.default_limit
        """
        for section in SECTIONS:
            config_dict.setdefault(section, {})

        for env_key, env_value in env.items():
            if not env_key.startswith(ENV_PREFIX):
                continue
            rest = env_key[len(ENV_PREFIX):].lower()

            section = next((s for s in SECTIONS if rest.startswith(s + '_')), None)
            if section is None:
                parts = rest.split('_', 1)
                if len(parts) < 2:
                    continue
                section, key = parts
            else:
                key = rest[len(section) + 1:]
            if not key:
                continue

            value = cls._parse_env_value(env_value)
            config_dict.setdefault(section, {})[key] = value
            logger.info(f"ENV override: {env_key} -> {section}.{key} = {value}")

        return config_dict

    @staticmethod
    def _parse_env_value(value: str) -> Any:
        """Typed value for an environment string: bool, None, int, float or str."""
        lowered = value.strip().lower()
        if lowered in ('true', 'yes', 'on'):
            return True
        if lowered in ('false', 'no', 'off'):
            return False
        if lowered in ('null', 'none', ''):
            return None
        try:
            return int(value)
        except ValueError:
            pass
        try:
            return float(value)
        except ValueError:
            pass
        return value

    def get(self, section: str, key: str, default: Any = None) -> Any:
        section_config = self._config.get(section)
        if isinstance(section_config, dict):
            return section_config.get(key, default)
        return default

    def get_section(self, section: str) -> Dict[str, Any]:
        return self._config.get(section, {})

    @property
    def embedding(self) -> Dict[str, Any]:
        return self.get_section('embedding')

    @property
    def vector_store(self) -> Dict[str, Any]:
        return self.get_section('vector_store')

    @property
    def search(self) -> Dict[str, Any]:
        return self.get_section('search')

    @property
    def resilience(self) -> Dict[str, Any]:
        return self.get_section('resilience')

    @property
    def paths(self) -> Dict[str, Any]:
        return self.get_section('paths')

    @property
    def metrics(self) -> Dict[str, Any]:
        return self.get_section('metrics')

    def to_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self._config)

    def show(self) -> str:
        """Effective configuration as JSON, for debugging."""
        return json.dumps(self._config, indent=2, default=str)


def load_config(config_path: Optional[Path] = None) -> Config:
    """
    Load settings the way the CLI and API do.

    Args:
        config_path: config.yaml to read (default: nearest one upward)

    Returns:
        Config instance
    """
    return Config.load(config_path)
