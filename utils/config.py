"""
Configuration management
"""

import copy
import os
from pathlib import Path
from typing import Any, Dict

import yaml
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


DEFAULT_CONFIG: Dict[str, Any] = {
    'app': {
        'name': 'GST Invoice Engine',
        'host': '127.0.0.1',
        'port': 8000,
    },
    'storage': {
        'backend': 'memory',
        'path': './data/store',
    },
    'ai': {
        'enabled': False,
        'model': 'gpt-4o-mini',
        'temperature': 0,
        'timeout': 20,
        'hsn_rates_path': None,
        'min_lookup_score': 60,
    },
    'logging': {
        'dir': None,
    },
}


def _merge(base: Dict, override: Dict) -> Dict:
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def load_config(config_path: str = "config.yaml") -> Dict[str, Any]:
    """Load configuration from YAML file, defaults filled in"""

    config_file = Path(config_path)

    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_file) as f:
        config = _merge(DEFAULT_CONFIG, yaml.safe_load(f) or {})

    return apply_env_overrides(config)


def apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    """Override with environment variables if present"""

    if os.getenv('INVOICE_STORAGE_BACKEND'):
        config['storage']['backend'] = os.getenv('INVOICE_STORAGE_BACKEND')
    if os.getenv('INVOICE_STORAGE_PATH'):
        config['storage']['path'] = os.getenv('INVOICE_STORAGE_PATH')
    if os.getenv('AI_ENABLED'):
        config['ai']['enabled'] = _env_flag(os.getenv('AI_ENABLED'))
    if os.getenv('AI_MODEL'):
        config['ai']['model'] = os.getenv('AI_MODEL')
    if os.getenv('HSN_RATES_PATH'):
        config['ai']['hsn_rates_path'] = os.getenv('HSN_RATES_PATH')
    if os.getenv('LOG_DIR'):
        config['logging']['dir'] = os.getenv('LOG_DIR')

    # Add API keys
    config['api_keys'] = {
        'openai': os.getenv('OPENAI_API_KEY'),
        'groq': os.getenv('GROQ_API_KEY'),
        'xai': os.getenv('XAI_API_KEY'),
    }

    return config


def default_config() -> Dict[str, Any]:
    """Built-in defaults with environment overrides (no config file)"""
    return apply_env_overrides(copy.deepcopy(DEFAULT_CONFIG))
