"""
配置加载模块
Configuration loading module

Loads the YAML config file, substitutes environment variables and applies
defaults. Secrets (API keys) are expected to come from the environment or a
``.env`` file via ``${VAR}`` placeholders.
"""

import copy
import os
import re
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

MIN_CLUSTER_COUNT = 1
MAX_CLUSTER_COUNT = 50
MIN_DAYS_TO_FETCH = 1
MAX_DAYS_TO_FETCH = 90

PIPELINE_MODES = ("curated", "summary")


def load_env_file(env_path: str | None = None) -> bool:
    """
    Load environment variables from a .env file.

    Args:
        env_path: Path to the .env file; None auto-discovers one

    Returns:
        Whether a .env file was loaded
    """
    if env_path:
        env_file = Path(env_path)
        if env_file.exists():
            load_dotenv(env_file)
            return True
        return False

    return load_dotenv()


def replace_env_vars(value: Any) -> Any:
    """
    Recursively substitute environment variable placeholders.

    Supports ``${VAR_NAME}`` and ``${VAR_NAME:default}``. A missing variable
    without a default becomes an empty string.

    Examples:
        >>> os.environ['TEST_VAR'] = 'test_value'
        >>> replace_env_vars('${TEST_VAR}')
        'test_value'
        >>> replace_env_vars({'key': '${MISSING_VAR:fallback}'})
        {'key': 'fallback'}
    """
    if isinstance(value, str):
        pattern = r'\$\{([^}:]+)(?::([^}]*))?\}'

        def replacer(match: re.Match) -> str:
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else ''
            return os.environ.get(var_name, default_value)

        return re.sub(pattern, replacer, value)

    elif isinstance(value, dict):
        return {k: replace_env_vars(v) for k, v in value.items()}

    elif isinstance(value, list):
        return [replace_env_vars(item) for item in value]

    return value


def load_config(config_path: str = "config.yaml", env_path: str | None = None) -> dict:
    """
    Load a YAML config file and substitute environment variables.

    Args:
        config_path: Config file path
        env_path: .env file path, None auto-discovers

    Returns:
        Parsed config dict (without defaults applied)

    Raises:
        FileNotFoundError: Config file not found
        yaml.YAMLError: YAML parse error
    """
    load_env_file(env_path)

    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_file, 'r', encoding='utf-8') as f:
        config = yaml.safe_load(f)

    if config is None:
        return {}

    return replace_env_vars(config)


# Default configuration values
DEFAULT_CONFIG: dict[str, Any] = {
    # Shared OpenAI-compatible endpoint
    'ai': {
        'api_base': 'https://api.openai.com/v1',
        'api_key': '',
        'model': 'gpt-4o',
        'temperature': 0.7,
        'max_tokens': 16000,
        'timeout': 120,
    },
    'embedding': {
        'model': 'text-embedding-3-small',
        'api_base': None,
        'api_key': None,
        'batch_size': 20,
        'max_chars_per_article': 6000,
        'max_retries': 3,
        'retry_base_delay': 1.0,
        'batch_delay': 0.2,
        'timeout': 60,
    },
    'generation': {
        'max_retries': 3,
        'retry_base_delay': 2.0,
        'max_workers': 4,
        'prompts_dir': None,
    },
    'pipeline': {
        'mode': 'curated',
        'cluster_count': 8,
        'days_to_fetch': 7,
        'top_count': 4,
        'best_of_count': 5,
        'representative_count': 3,
        'random_state': 42,
        'cache_dir': 'cache',
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dicts, values in ``override`` win.

    Examples:
        >>> _deep_merge({'a': {'b': 1, 'c': 2}}, {'a': {'b': 10}})
        {'a': {'b': 10, 'c': 2}}
    """
    result = copy.deepcopy(base)

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def apply_defaults(config: dict) -> dict:
    """Apply ``DEFAULT_CONFIG`` under the user config."""
    return _deep_merge(DEFAULT_CONFIG, config)


def _section(config: dict, name: str) -> dict:
    user_config = config.get(name) or {}
    return _deep_merge(DEFAULT_CONFIG.get(name, {}), user_config)


def get_embedding_config(config: dict) -> dict:
    """
    Embedding section with defaults; endpoint and key fall back to ``ai``.

    Examples:
        >>> cfg = get_embedding_config({'ai': {'api_key': 'sk-1'}})
        >>> cfg['api_key'], cfg['batch_size']
        ('sk-1', 20)
    """
    ai_config = _section(config, 'ai')
    embedding_config = _section(config, 'embedding')
    embedding_config['api_base'] = embedding_config.get('api_base') or ai_config['api_base']
    embedding_config['api_key'] = embedding_config.get('api_key') or ai_config['api_key']
    return embedding_config


def get_generation_config(config: dict) -> dict:
    """Text-generation settings: the ``ai`` endpoint merged with ``generation`` retry/pool settings."""
    return _deep_merge(_section(config, 'ai'), _section(config, 'generation'))


def get_pipeline_config(config: dict) -> dict:
    """Pipeline section with defaults, validated."""
    pipeline_config = _section(config, 'pipeline')
    validate_pipeline_config(pipeline_config)
    return pipeline_config


def validate_pipeline_config(pipeline_config: dict) -> None:
    """
    Validate pipeline settings.

    Raises:
        ValueError: cluster_count outside 1-50, days_to_fetch outside 1-90,
                    or an unknown mode
    """
    try:
        cluster_count = int(pipeline_config.get('cluster_count'))
    except (TypeError, ValueError):
        raise ValueError(
            f"Invalid cluster_count: {pipeline_config.get('cluster_count')!r}"
        ) from None
    if not MIN_CLUSTER_COUNT <= cluster_count <= MAX_CLUSTER_COUNT:
        raise ValueError(
            f"Invalid cluster_count: must be between {MIN_CLUSTER_COUNT}-{MAX_CLUSTER_COUNT}, "
            f"got {cluster_count}"
        )

    try:
        days = int(pipeline_config.get('days_to_fetch'))
    except (TypeError, ValueError):
        raise ValueError(
            f"Invalid days_to_fetch: {pipeline_config.get('days_to_fetch')!r}"
        ) from None
    if not MIN_DAYS_TO_FETCH <= days <= MAX_DAYS_TO_FETCH:
        raise ValueError(
            f"Invalid days_to_fetch: must be between {MIN_DAYS_TO_FETCH}-{MAX_DAYS_TO_FETCH}, "
            f"got {days}"
        )

    mode = pipeline_config.get('mode')
    if mode not in PIPELINE_MODES:
        raise ValueError(f"Invalid mode: {mode!r}, expected one of {PIPELINE_MODES}")

    pipeline_config['cluster_count'] = cluster_count
    pipeline_config['days_to_fetch'] = days


def load_config_with_defaults(config_path: str = "config.yaml", env_path: str | None = None) -> dict:
    """
    Load the config file, apply defaults and validate the pipeline section.

    Examples:
        >>> config = load_config_with_defaults("config.yaml")
        >>> config['embedding']['batch_size']
        20
    """
    config = apply_defaults(load_config(config_path, env_path))
    validate_pipeline_config(config['pipeline'])
    return config
