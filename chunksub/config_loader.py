"""Handles loading configuration from YAML files."""

import yaml
import os
import logging
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    'provider': 'gemini',
    'gemini_model': 'gemini-2.5-flash',
    'gemini_api_key': None,
    'request_timeout': None,
    'language': 'ja',
    'instruction': None,
    'track_label': None,
    'chunk_seconds': 30,
    'whisper_model': 'medium',
    'device': 'cuda',
    'whisper_fp16': True,
    'ffmpeg_path': None,
    'ffprobe_path': None,
    'temp_dir': None,
    'log_dir': 'logs',
    'log_file': 'chunksub.log',
}

class ConfigLoader:
    """Loads configuration settings from a YAML file."""

    def load_config(self, config_path: str) -> dict:
        """
        Loads configuration from the specified YAML file path.

        Args:
            config_path: The path to the YAML configuration file.

        Returns:
            A dictionary containing the loaded configuration settings.

        Raises:
            FileNotFoundError: If the configuration file does not exist.
            ConfigurationError: If the file cannot be parsed as YAML or
                              if there are other reading errors.
        """
        logger.info(f"Attempting to load configuration from: {config_path}")
        if not os.path.exists(config_path):
            logger.error(f"Configuration file not found at path: {config_path}")
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        if not os.path.isfile(config_path):
            logger.error(f"Configuration path is not a file: {config_path}")
            raise ConfigurationError(f"Configuration path is not a file: {config_path}")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"Error parsing YAML configuration file {config_path}: {e}", exc_info=True)
            raise ConfigurationError(f"Invalid YAML format in {config_path}: {e}") from e
        except IOError as e:
            logger.error(f"Error reading configuration file {config_path}: {e}", exc_info=True)
            raise ConfigurationError(f"Could not read configuration file {config_path}: {e}") from e

        if config is None: # empty file
            config = {}
        if not isinstance(config, dict):
            logger.error(f"Configuration file {config_path} did not load as a dictionary (root object).")
            raise ConfigurationError(f"Invalid YAML structure in {config_path}. Root must be a mapping (dictionary).")
        logger.info(f"Configuration loaded successfully from {config_path}")
        return apply_defaults(config)

def apply_defaults(config: dict) -> dict:
    """
    Returns a copy of config with missing keys taken from DEFAULT_CONFIG.

    Raises:
        ConfigurationError: If chunk_seconds or request_timeout are not positive numbers.
    """
    merged = dict(DEFAULT_CONFIG)
    merged.update({k: v for k, v in config.items() if v is not None})

    chunk_seconds = merged['chunk_seconds']
    if isinstance(chunk_seconds, bool) or not isinstance(chunk_seconds, (int, float)) or chunk_seconds <= 0:
        raise ConfigurationError(f"'chunk_seconds' must be a positive number, got {chunk_seconds!r}")
    timeout = merged['request_timeout']
    if timeout is not None and (isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0):
        raise ConfigurationError(f"'request_timeout' must be a positive number, got {timeout!r}")
    return merged
