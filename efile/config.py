"""
Runtime configuration.

A TransformConfig is built once per invocation (from CLI flags and the
environment) and passed to every component that needs it. Nothing here is
module-level mutable state.

Environment:
    EFILE_QUIET         "1", "true", "yes" or "on" suppresses progress lines
    EFILE_MAX_WORKERS   size of the leaf worker pool
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional


# Constants
ENV_QUIET = "EFILE_QUIET"
ENV_MAX_WORKERS = "EFILE_MAX_WORKERS"
DEFAULT_MAX_WORKERS = min(32, (os.cpu_count() or 1) + 4)
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

_TRUTHY = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class TransformConfig:
    """
    Options for one encrypt/decrypt run.

    Attributes:
        quiet: Suppress per-entry progress lines
        names: Transform file and directory names
        contents: Transform file contents
        max_workers: Leaf worker pool size
        fail_fast: Stop dispatching after the first error
    """
    quiet: bool = False
    names: bool = True
    contents: bool = True
    max_workers: int = DEFAULT_MAX_WORKERS
    fail_fast: bool = False

    def __post_init__(self):
        if not (self.names or self.contents):
            raise ValueError("At least one of names or contents must be transformed")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be positive, got {self.max_workers}")

    @classmethod
    def from_env(cls, environ: Optional[dict] = None, **overrides) -> 'TransformConfig':
        """
        Build a config from environment variables.

        Args:
            environ: Mapping to read instead of os.environ
            **overrides: Explicit values; None values are ignored

        Returns:
            TransformConfig
        """
        environ = os.environ if environ is None else environ
        values = {}

        quiet = environ.get(ENV_QUIET)
        if quiet is not None:
            values['quiet'] = quiet.strip().lower() in _TRUTHY

        workers = environ.get(ENV_MAX_WORKERS)
        if workers:
            try:
                values['max_workers'] = int(workers)
            except ValueError:
                raise ValueError(f"{ENV_MAX_WORKERS} must be an integer, got {workers!r}")

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def configure_logging(level: int = logging.WARNING,
                      log_file: Optional[str] = None) -> None:
    """
    Configure the root logger for CLI use.

    Does nothing if the root logger already has handlers.

    Args:
        level: Logging level
        log_file: Also write records to this file
    """
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)
