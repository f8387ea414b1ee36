"""Configuration loader with YAML support and environment variable substitution."""

import copy
import os
import re
from typing import Any, Dict
from urllib.parse import urlparse

import yaml

DEFAULT_CONFIG: Dict[str, Any] = {
    'github': {
        'api_url': 'https://api.github.com'
    },
    'users': {},
    'labels': {},
    'migration': {
        'start_id': None,
        'skip_closed': False,
        'single_post': False,
        'safe_checks': True,
        'dry_run': False,
        'poll_interval': 1.0,
        'attachment_url': None,
        'revmap_path': None
    },
    'logging': {},
    'advanced': {}
}


class ConfigLoader:
    """Handles loading and validation of configuration files."""

    ENV_VAR_PATTERN = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*)\}')
    REPO_PATTERN = re.compile(r'^[\w.-]+/[\w.-]+$')

    @classmethod
    def load(cls, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from YAML file with environment variable substitution.

        Missing sections are filled in from DEFAULT_CONFIG.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            Parsed configuration dictionary

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If YAML parsing fails
        """
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f)

        if not isinstance(config_data, dict):
            raise ValueError("Configuration file must contain a dictionary")

        config_data = cls._substitute_env_vars_recursive(config_data)

        return cls.apply_defaults(config_data)

    @classmethod
    def apply_defaults(cls, config: Dict[str, Any]) -> Dict[str, Any]:
        """Return a copy of config with DEFAULT_CONFIG merged underneath."""
        merged = copy.deepcopy(DEFAULT_CONFIG)
        for section, values in config.items():
            if isinstance(values, dict) and isinstance(merged.get(section), dict):
                merged[section].update(values)
            else:
                merged[section] = values
        return merged

    @classmethod
    def validate(cls, config: Dict[str, Any]) -> None:
        """
        Validate configuration for required fields and correct values.

        Args:
            config: Configuration dictionary to validate

        Raises:
            ValueError: If validation fails
        """
        cls._validate_required_field(config, 'trac.database_url')

        cls._validate_required_field(config, 'github.repo')
        repo = get_nested(config, 'github.repo')
        if not cls.REPO_PATTERN.match(str(repo)):
            raise ValueError(f"github.repo must have the form 'owner/name', got '{repo}'")

        cls._validate_required_field(config, 'github.token')
        cls._validate_url(get_nested(config, 'github.api_url', 'https://api.github.com'), 'github.api_url')

        users = get_nested(config, 'users', {}) or {}
        if not isinstance(users, dict):
            raise ValueError("users must be a mapping of Trac handle or email to GitHub login")

        labels = get_nested(config, 'labels', {}) or {}
        if not isinstance(labels, dict):
            raise ValueError("labels must be a mapping of category to value/label mappings")
        for category, rules in labels.items():
            if not isinstance(rules, dict):
                raise ValueError(f"labels.{category} must be a mapping of value to label name")

        for flag in ('skip_closed', 'single_post', 'safe_checks', 'dry_run'):
            value = get_nested(config, f'migration.{flag}', False)
            if not isinstance(value, bool):
                raise ValueError(f"migration.{flag} must be a boolean")

        start_id = get_nested(config, 'migration.start_id')
        if start_id is not None and (not isinstance(start_id, int) or isinstance(start_id, bool) or start_id < 1):
            raise ValueError("migration.start_id must be a positive integer")

        poll_interval = get_nested(config, 'migration.poll_interval', 1.0)
        if not isinstance(poll_interval, (int, float)) or poll_interval <= 0:
            raise ValueError("migration.poll_interval must be a positive number")

        attachment_url = get_nested(config, 'migration.attachment_url')
        if attachment_url:
            cls._validate_url(attachment_url, 'migration.attachment_url')

        timeout = get_nested(config, 'advanced.request_timeout', 30)
        if not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ValueError("advanced.request_timeout must be a positive number")

    @classmethod
    def merge_with_args(cls, config: Dict[str, Any], args) -> Dict[str, Any]:
        """
        Merge configuration file with CLI arguments.
        CLI arguments take precedence over config file values.

        Args:
            config: Base configuration dictionary
            args: CLI arguments with attributes matching config keys

        Returns:
            Merged configuration dictionary
        """
        merged = copy.deepcopy(config)

        for section in ('migration', 'logging'):
            if not isinstance(merged.get(section), dict):
                merged[section] = {}

        if getattr(args, 'start_id', None):
            merged['migration']['start_id'] = args.start_id

        if getattr(args, 'revmap', None):
            merged['migration']['revmap_path'] = args.revmap

        # Boolean flags default to None so an absent flag keeps the file value
        for flag in ('skip_closed', 'single_post', 'safe_checks', 'dry_run'):
            value = getattr(args, flag, None)
            if value is not None:
                merged['migration'][flag] = value

        verbose = getattr(args, 'verbose', 0)
        if verbose:
            merged['logging']['level'] = 'DEBUG' if verbose >= 2 else 'INFO'

        if getattr(args, 'log_file', None):
            merged['logging']['file'] = args.log_file

        return merged

    @classmethod
    def _substitute_env_vars_recursive(cls, data: Any) -> Any:
        """Recursively substitute environment variables in data structure."""
        if isinstance(data, dict):
            return {key: cls._substitute_env_vars_recursive(value) for key, value in data.items()}
        elif isinstance(data, list):
            return [cls._substitute_env_vars_recursive(item) for item in data]
        elif isinstance(data, str):
            return cls._substitute_env_vars(data)
        else:
            return data

    @classmethod
    def _substitute_env_vars(cls, value: str) -> str:
        """Substitute environment variables in a string value."""
        def replace_match(match):
            var_name = match.group(1)
            env_value = os.getenv(var_name)
            return env_value if env_value is not None else match.group(0)

        return cls.ENV_VAR_PATTERN.sub(replace_match, value)

    @staticmethod
    def _validate_required_field(config_section: dict, field: str) -> None:
        """Validate that a required field exists and has a value."""
        value = get_nested(config_section, field)
        if value is None or value == '':
            raise ValueError(f"Missing required configuration: {field}")

        # Unsubstituted environment variables
        if isinstance(value, str) and '${' in value:
            match = ConfigLoader.ENV_VAR_PATTERN.search(value)
            var_name = match.group(1) if match else value
            raise ValueError(
                f"Configuration field '{field}' contains unsubstituted environment variable: {value}. "
                f"Please set the {var_name} environment variable or provide a value in config file."
            )

    @staticmethod
    def _validate_url(url: str, field_name: str) -> None:
        """Validate URL format."""
        parsed = urlparse(str(url))
        if not parsed.scheme or parsed.scheme not in ['http', 'https']:
            raise ValueError(f"{field_name} must use http or https scheme: {url}")
        if not parsed.netloc:
            raise ValueError(f"{field_name} missing hostname: {url}")


def get_nested(config: dict, path: str, default: Any = None) -> Any:
    """Safely retrieve nested configuration values using dot notation.

    Args:
        config: Configuration dictionary
        path: Dot-separated path (e.g., "github.repo")
        default: Default value if path doesn't exist

    Returns:
        Value at the nested path or default
    """
    keys = path.split('.')
    value = config

    for key in keys:
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default

    return value


__all__ = ['ConfigLoader', 'DEFAULT_CONFIG', 'get_nested']
