"""
Configuration for the Cognito auth client.

Environment variables take precedence over the JSON config file.
"""

import json
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / '.cognito-auth-client'
CONFIG_FILE = CONFIG_DIR / 'config.json'

ENV_VARS = {
    'user_pool_id': 'COGNITO_USER_POOL_ID',
    'client_id': 'COGNITO_CLIENT_ID',
    'region': 'AWS_REGION',
    'token_file': 'COGNITO_TOKEN_FILE',
}

REQUIRED_FIELDS = ['user_pool_id', 'client_id']


def load_config(config_file=None):
    """Load configuration from environment variables or config file"""
    config_file = Path(config_file) if config_file else CONFIG_FILE
    config = {key: os.getenv(var) for key, var in ENV_VARS.items()}

    if config_file.exists():
        try:
            with open(config_file, 'r') as f:
                file_config = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Could not load config file %s: %s", config_file, e)
        else:
            for key, value in file_config.items():
                if not config.get(key):  # Only use file config if env var not set
                    config[key] = value

    return config


def save_config(config, config_file=None):
    """Save configuration to config file and return its path"""
    config_file = Path(config_file) if config_file else CONFIG_FILE
    config_file.parent.mkdir(parents=True, exist_ok=True)
    with open(config_file, 'w') as f:
        json.dump({key: value for key, value in config.items() if value}, f, indent=2)
    return config_file


def missing_fields(config):
    return [field for field in REQUIRED_FIELDS if not config.get(field)]
