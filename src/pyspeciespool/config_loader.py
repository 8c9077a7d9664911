"""
Configuration loader for PySpeciesPool.
Provides unified access to YAML, TOML, and JSON parameter files.

Supports:
- YAML (.yaml, .yml) - packaged defaults and user parameter files
- TOML (.toml) - structured configuration with types
- JSON (.json) - machine-generated parameter sets

A parameter file holds the fields of PoolParameters at top level and an
optional ``workers`` table with the fields of WorkerPoolConfig.
"""
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import tomli_w
import yaml

from .exceptions import ConfigurationError, InvalidDataError
from .parameters import PoolParameters, WorkerPoolConfig

# Handle TOML imports for different Python versions
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

DEFAULT_PARAMETER_FILE = 'default_parameters.yaml'


class ConfigLoader:
    """Loads run parameters from the cfg/ directory or user files.

    Attributes:
        cfg_dir: Path to the directory holding the packaged defaults
        defaults: Raw dictionary loaded from the default parameter file
    """

    def __init__(self, cfg_dir: Path = None):
        """Initialize the configuration loader.

        Args:
            cfg_dir: Path to the configuration directory. Defaults to the
                cfg/ directory shipped inside the package.
        """
        if cfg_dir is None:
            cfg_dir = Path(__file__).parent / 'cfg'
        self.cfg_dir = Path(cfg_dir)
        self.defaults = self._load_config_file(self.cfg_dir / DEFAULT_PARAMETER_FILE)

    def _load_config_file(self, file_path: Path) -> Dict[str, Any]:
        """Load configuration from a YAML, TOML or JSON file.

        Args:
            file_path: Path to the configuration file

        Returns:
            Dictionary containing configuration data

        Raises:
            ConfigurationError: If the file is missing, the format is not
                supported or parsing fails
            InvalidDataError: If the file is empty or does not hold a mapping
        """
        if not file_path.exists():
            raise ConfigurationError(f"Configuration file not found: {file_path}")

        suffix = file_path.suffix.lower()

        try:
            if suffix in ['.yaml', '.yml']:
                with open(file_path, 'r', encoding='utf-8') as f:
                    data = yaml.safe_load(f)
            elif suffix == '.toml':
                with open(file_path, 'rb') as f:
                    data = tomllib.load(f)
            elif suffix == '.json':
                with open(file_path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            else:
                raise ConfigurationError(f"Unsupported configuration file format: {suffix}. "
                                         f"Supported formats: .yaml, .yml, .toml, .json")
        except yaml.YAMLError as e:
            raise InvalidDataError("YAML configuration", f"parsing error: {str(e)}") from e
        except json.JSONDecodeError as e:
            raise InvalidDataError("JSON configuration", f"parsing error: {str(e)}") from e
        except tomllib.TOMLDecodeError as e:
            raise InvalidDataError("TOML configuration", f"parsing error: {str(e)}") from e

        if data is None:
            raise InvalidDataError(f"configuration file {file_path.name}",
                                   "file is empty or contains only comments")
        if not isinstance(data, dict):
            raise InvalidDataError(f"configuration file {file_path.name}",
                                   "top level must be a mapping")
        return data

    def _split(self, data: Dict[str, Any]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        """Separate the worker table from the run parameters."""
        data = dict(data)
        workers = data.pop('workers', None) or {}
        if not isinstance(workers, dict):
            raise InvalidDataError("configuration", "'workers' must be a mapping")
        workers = dict(workers)
        unknown = set(data) - set(PoolParameters.__dataclass_fields__)
        if unknown:
            raise ConfigurationError(f"Unknown parameter(s) in configuration: {sorted(unknown)}")
        return data, workers

    def load(self, path: Optional[Union[str, Path]] = None,
             **overrides: Any) -> Tuple[PoolParameters, WorkerPoolConfig]:
        """Build validated parameters from defaults, a file and keyword overrides.

        Later sources win: packaged defaults, then the file, then overrides.
        Overrides named like WorkerPoolConfig fields go to the worker config.

        Args:
            path: Optional user parameter file
            **overrides: Individual parameter values

        Returns:
            Tuple of (PoolParameters, WorkerPoolConfig)

        Raises:
            ConfigurationError: If neither the file nor the overrides set
                'geodesic', or a key is unknown
        """
        params, workers = self._split(self.defaults)
        if path is not None:
            file_params, file_workers = self._split(self._load_config_file(Path(path)))
            params.update(file_params)
            workers.update(file_workers)

        for key, value in overrides.items():
            if key in WorkerPoolConfig.__dataclass_fields__:
                workers[key] = value
            elif key in PoolParameters.__dataclass_fields__:
                params[key] = value
            else:
                raise ConfigurationError(f"Unknown parameter override: {key!r}")

        if 'geodesic' not in params:
            raise ConfigurationError("Parameter 'geodesic' is required: specify whether the plot "
                                     "coordinates are geodesic (lon/lat) or projected")

        return PoolParameters(**params), WorkerPoolConfig(**workers)

    def save(self, params: PoolParameters, file_path: Union[str, Path],
             workers: Optional[WorkerPoolConfig] = None) -> None:
        """Save parameters to a YAML, TOML or JSON file.

        TOML has no null value, so unset parameters are left out; a parameter
        whose unset state differs from its default cannot be stored as TOML.

        Args:
            params: Parameters to save
            file_path: Path where to save the file
            workers: Optional worker configuration stored under 'workers'

        Raises:
            ConfigurationError: If file format is not supported
        """
        file_path = Path(file_path)
        data = params.to_dict()
        if workers is not None:
            data['workers'] = {
                'workers': workers.workers,
                'kind': workers.kind,
                'chunksize': workers.chunksize,
            }

        file_path.parent.mkdir(parents=True, exist_ok=True)
        suffix = file_path.suffix.lower()
        if suffix in ['.yaml', '.yml']:
            with open(file_path, 'w', encoding='utf-8') as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
        elif suffix == '.json':
            with open(file_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2)
        elif suffix == '.toml':
            unset = [key for key, value in data.items() if value is None]
            lossy = [key for key in unset
                     if PoolParameters.__dataclass_fields__[key].default is not None]
            if lossy:
                raise ConfigurationError(f"TOML cannot store unset parameter(s) {lossy}; "
                                         f"use YAML or JSON")
            with open(file_path, 'wb') as f:
                tomli_w.dump({k: v for k, v in data.items() if v is not None}, f)
        else:
            raise ConfigurationError(f"Unsupported configuration file format: {suffix}")


_config_loader: Optional[ConfigLoader] = None


def get_config_loader() -> ConfigLoader:
    """Get the shared loader for the packaged configuration directory."""
    global _config_loader
    if _config_loader is None:
        _config_loader = ConfigLoader()
    return _config_loader


def load_parameters(path: Optional[Union[str, Path]] = None,
                    **overrides: Any) -> Tuple[PoolParameters, WorkerPoolConfig]:
    """Convenience function to load run parameters.

    Args:
        path: Optional parameter file (YAML, TOML or JSON)
        **overrides: Individual parameter values taking precedence
    """
    return get_config_loader().load(path, **overrides)


def save_parameters(params: PoolParameters, file_path: Union[str, Path],
                    workers: Optional[WorkerPoolConfig] = None) -> None:
    """Convenience function to save run parameters."""
    get_config_loader().save(params, file_path, workers)
