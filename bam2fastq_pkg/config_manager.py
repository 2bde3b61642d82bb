"""
Configuration management for BAM to FASTQ conversion.

Loads a JSON configuration file into an immutable Bam2FastqConverter.Settings.

Config file layout:

.. code-block:: json

    {
      "options": {
        "output_template": "lane%_read#.fastq",
        "save_filtered": false,
        "output_mode": "files",
        "coding_type": "gz",
        "threads": 4
      }
    }

Every key of "options" must be a Settings field, or "output_mode"
(files / stdout / stdout-flat), which sets the two stdout flags.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

from bam2fastq_pkg.converter import Bam2FastqConverter
from bam2fastq_pkg.logger import get_logger
from bam2fastq_pkg.utils.formats import OutputMode
from bam2fastq_pkg.exceptions import ConfigurationError

# Expected JSON type per option
_OPTION_TYPES = {
    'output_template': (str,),
    'save_aligned': (bool,),
    'save_unaligned': (bool,),
    'save_filtered': (bool,),
    'overwrite': (bool,),
    'quiet': (bool,),
    'strict': (bool,),
    'stdout_interleaved': (bool,),
    'stdout_flat': (bool,),
    'coding_type': (str, type(None)),
    'threads': (int, type(None)),
}

MAX_RECOMMENDED_THREADS = 16


class ConfigManager:
    """
    Configuration file parser and validator.

    Primary usage:
        settings = ConfigManager.load("bam2fastq.json")
    """

    @staticmethod
    def load(config_path: str, base: Optional[Bam2FastqConverter.Settings] = None) -> Bam2FastqConverter.Settings:
        """
        Load settings from a JSON file.

        Args:
            config_path: Path to the JSON config
            base: Settings the file values are applied on (defaults if None)

        Returns:
            New Settings instance

        Raises:
            ConfigurationError: If the file is missing, malformed, or holds invalid options
        """
        logger = get_logger()
        logger.debug(f"Loading configuration from: {config_path}")

        config_file = Path(config_path)
        if not config_file.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.add_issue(
                level='ERROR',
                category='configuration',
                message='Malformed JSON in config file',
                details={'file': str(config_path), 'error': str(e)}
            )
            raise ConfigurationError(f"Invalid JSON in configuration file: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError("Configuration file must contain a JSON object")

        options = ConfigManager.parse_options(data.get('options', {}))
        settings = base if base is not None else Bam2FastqConverter.Settings()
        try:
            settings = settings.update(**options)
        except ValueError as e:
            raise ConfigurationError(f"Configuration validation failed: {e}") from e

        logger.debug("✓ Configuration loaded", options=sorted(options))
        return settings

    @staticmethod
    def parse_options(options: Any) -> Dict[str, Any]:
        """
        Validate the "options" object and translate it to Settings fields.

        Raises:
            ConfigurationError: On unknown keys or wrongly typed values
        """
        logger = get_logger()

        if not isinstance(options, dict):
            raise ConfigurationError("'options' must be a dictionary")

        parsed = dict(options)

        if 'output_mode' in parsed:
            try:
                mode = OutputMode(parsed.pop('output_mode'))
            except ValueError as e:
                raise ConfigurationError(str(e)) from e
            parsed['stdout_interleaved'] = mode == OutputMode.STDOUT
            parsed['stdout_flat'] = mode == OutputMode.STDOUT_FLAT

        invalid_keys = set(parsed) - set(_OPTION_TYPES)
        if invalid_keys:
            raise ConfigurationError(
                f"Invalid options: {sorted(invalid_keys)}. "
                f"Allowed options: {', '.join(sorted(_OPTION_TYPES))}, output_mode"
            )

        for key, value in parsed.items():
            expected = _OPTION_TYPES[key]
            # bool is an int subclass; threads must not accept true/false
            if key == 'threads' and isinstance(value, bool):
                expected = ()
            if not isinstance(value, expected):
                raise ConfigurationError(
                    f"'{key}' has wrong type {type(value).__name__}: {value!r}"
                )

        threads = parsed.get('threads')
        if threads is not None and threads > MAX_RECOMMENDED_THREADS:
            logger.warning(
                f"Thread count {threads} is high - diminishing returns beyond "
                f"{MAX_RECOMMENDED_THREADS} compression threads."
            )

        return parsed
