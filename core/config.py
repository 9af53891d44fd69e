"""
Persistent configuration management for MetricGrid.

Handles user preferences (suggestion service provider, column widths,
instructions file limits) and config file storage.
"""

import os
import json
import sys
from pathlib import Path


APP_DIR_NAME = 'MetricGrid'

DEFAULT_CONFIG = {
    'ai_provider': 'openai',
    'ai_model': '',                     # Empty = provider default
    'ollama_base_url': 'http://localhost:11434',
    'default_column_width': 160,
    'wide_column_width': 200,
    'min_column_width': 80,
    'max_instructions_bytes': 5 * 1024 * 1024,
}

# API keys are read from these variables and never written to the config file
API_KEY_ENV_VARS = {
    'openai': 'OPENAI_API_KEY',
    'claude': 'ANTHROPIC_API_KEY',
}


def get_config_dir():
    """
    Get platform-specific config directory.

    Returns:
        Path: Config directory path

    Platform paths:
    - Windows: C:/Users/{username}/AppData/Roaming/MetricGrid
    - Mac: ~/Library/Application Support/MetricGrid
    - Linux: ~/.config/MetricGrid (or $XDG_CONFIG_HOME/MetricGrid)
    """
    if sys.platform == 'win32':
        base = os.environ.get('APPDATA', os.path.expanduser('~'))
        config_dir = Path(base) / APP_DIR_NAME
    elif sys.platform == 'darwin':
        config_dir = Path.home() / 'Library' / 'Application Support' / APP_DIR_NAME
    else:
        base = os.environ.get('XDG_CONFIG_HOME') or str(Path.home() / '.config')
        config_dir = Path(base) / APP_DIR_NAME

    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_config_path():
    """
    Get full path to config file.

    Returns:
        Path: Config file path (e.g., ~/.config/MetricGrid/config.json)
    """
    return get_config_dir() / 'config.json'


def load_config():
    """
    Load config from file, merged over the defaults.

    Returns:
        dict: Config dictionary (see DEFAULT_CONFIG for keys)
    """
    config_path = get_config_path()
    config = dict(DEFAULT_CONFIG)

    if config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                saved = json.load(f)
            if isinstance(saved, dict):
                config.update(saved)
        except (json.JSONDecodeError, OSError) as e:
            print(f"[Config] Warning: Could not load config: {e}")

    return config


def save_config(config):
    """
    Save config to file. API keys are stripped before writing.

    Returns:
        bool: True if successful, False otherwise
    """
    to_save = {k: v for k, v in config.items() if k != 'api_key'}
    try:
        with open(get_config_path(), 'w', encoding='utf-8') as f:
            json.dump(to_save, f, indent=2)
        return True
    except OSError as e:
        print(f"[Config] Warning: Could not save config: {e}")
        return False


def update_config(key, value):
    """Update a single config value and save."""
    config = load_config()
    config[key] = value
    return save_config(config)


def get_ai_settings():
    """
    Settings used to build the suggestion service client.

    Returns:
        dict: ai_provider, ai_model, ollama_base_url and api_key (from env, may be None)
    """
    config = load_config()
    provider = str(config.get('ai_provider', 'openai')).lower()
    env_var = API_KEY_ENV_VARS.get(provider)
    return {
        'ai_provider': provider,
        'ai_model': config.get('ai_model', ''),
        'ollama_base_url': config.get('ollama_base_url', DEFAULT_CONFIG['ollama_base_url']),
        'api_key': os.environ.get(env_var) if env_var else None,
    }


def get_max_instructions_bytes():
    """Largest accepted instructions file, in bytes."""
    return int(load_config().get('max_instructions_bytes', DEFAULT_CONFIG['max_instructions_bytes']))
