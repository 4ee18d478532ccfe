"""ndstride Configuration APIs.

Public APIs for configuring ndstride:
- configure() - Set global configuration
- get_config() - Get current configuration
- load_config() - Load configuration from a YAML file
- checks_enabled() - Whether newly built arrays validate their inputs
- checked() - Context manager switching checked/unchecked mode

Checked mode enables every validation the library knows about. Unchecked
mode keeps only the checks that are cheap regardless of array size. The
mode is captured by each array at construction time.
"""
from __future__ import annotations

import os
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from typing import Any, Generator, Optional

import yaml

from ndstride.exceptions import ConfigurationError

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


@dataclass
class NDStrideConfig:
    """Global ndstride configuration.

    Attributes:
        checks: If True, arrays validate indices, shapes and storage access.
                Defaults to ``__debug__`` so ``python -O`` runs unchecked.
        tolerance: Absolute tolerance used by array equality.
        default_dtype: Element type used when none is given.
    """
    checks: bool = __debug__
    tolerance: float = 1e-12
    default_dtype: str = "float64"

    def __post_init__(self) -> None:
        """Validate configuration values."""
        from ndstride.dtypes import resolve_dtype
        from ndstride.exceptions import TypeMismatchError

        if self.tolerance < 0:
            raise ConfigurationError(
                "tolerance must be non-negative",
                config_key="tolerance",
                expected=">= 0",
                got=self.tolerance,
            )
        try:
            resolve_dtype(self.default_dtype)
        except TypeMismatchError as err:
            raise ConfigurationError(
                f"Unsupported default dtype: {self.default_dtype!r}",
                config_key="default_dtype",
                got=self.default_dtype,
            ) from err

    @classmethod
    def from_env(cls) -> "NDStrideConfig":
        """Create config from environment variables.

        Environment variables:
            NDSTRIDE_CHECKS: "1"/"true" to enable checks, "0"/"false" to disable
            NDSTRIDE_TOLERANCE: Equality tolerance
            NDSTRIDE_DEFAULT_DTYPE: Default element type name

        Returns:
            NDStrideConfig with values from environment.
        """
        checks = __debug__
        checks_str = os.environ.get("NDSTRIDE_CHECKS")
        if checks_str is not None:
            value = checks_str.strip().lower()
            if value in _TRUE_VALUES:
                checks = True
            elif value in _FALSE_VALUES:
                checks = False
            else:
                raise ConfigurationError(
                    f"Invalid NDSTRIDE_CHECKS value: {checks_str!r}",
                    config_key="NDSTRIDE_CHECKS",
                    expected="one of 1/0/true/false/yes/no/on/off",
                    got=checks_str,
                )

        tolerance_str = os.environ.get("NDSTRIDE_TOLERANCE")
        try:
            tolerance = float(tolerance_str) if tolerance_str else 1e-12
        except ValueError as err:
            raise ConfigurationError(
                f"Invalid NDSTRIDE_TOLERANCE value: {tolerance_str!r}",
                config_key="NDSTRIDE_TOLERANCE",
                got=tolerance_str,
            ) from err

        default_dtype = os.environ.get("NDSTRIDE_DEFAULT_DTYPE", "float64")

        return cls(
            checks=checks,
            tolerance=tolerance,
            default_dtype=default_dtype,
        )


@dataclass
class GlobalState:
    """Global state for ndstride."""
    config: NDStrideConfig = field(default_factory=NDStrideConfig.from_env)
    _lock: threading.Lock = field(default_factory=threading.Lock)


# Module-level global state
_global_state: Optional[GlobalState] = None
_state_lock = threading.Lock()


def _get_global_state() -> GlobalState:
    """Get or create global state."""
    global _global_state
    if _global_state is None:
        with _state_lock:
            if _global_state is None:
                _global_state = GlobalState()
    return _global_state


def configure(
    checks: Optional[bool] = None,
    tolerance: Optional[float] = None,
    default_dtype: Optional[str] = None,
    reset: bool = False,
) -> None:
    """Configure ndstride global settings.

    Settings persist for the lifetime of the process unless reset. Arrays
    that already exist keep the mode they were built with.

    Args:
        checks: Enable (True) or disable (False) validation for new arrays.
        tolerance: Absolute tolerance for array equality.
        default_dtype: Default element type name (e.g. "float32").
        reset: If True, reset all settings to defaults first.

    Raises:
        ConfigurationError: If a value is invalid. Settings are unchanged.

    Example:
        >>> import ndstride as nds
        >>> nds.configure(checks=False, tolerance=1e-9)
        >>> nds.configure(reset=True)
    """
    state = _get_global_state()

    with state._lock:
        base = NDStrideConfig() if reset else state.config
        updates: dict[str, Any] = {}
        if checks is not None:
            updates["checks"] = bool(checks)
        if tolerance is not None:
            updates["tolerance"] = float(tolerance)
        if default_dtype is not None:
            updates["default_dtype"] = default_dtype
        # replace() re-runs __post_init__ validation
        state.config = replace(base, **updates)


def get_config() -> NDStrideConfig:
    """Get current ndstride configuration.

    Returns:
        Current configuration object (copy for safety).
    """
    state = _get_global_state()
    with state._lock:
        return replace(state.config)


def load_config(path: str) -> None:
    """Load configuration from YAML file.

    Args:
        path: Path to YAML configuration file.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ConfigurationError: If config file is invalid.

    YAML format::

        checks: false
        tolerance: 1.0e-10
        default_dtype: float32
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as err:
            raise ConfigurationError(f"Invalid config file: {path}") from err

    if not isinstance(data, dict):
        raise ConfigurationError(f"Invalid config file format: {path}")

    unknown = sorted(set(data) - {"checks", "tolerance", "default_dtype"})
    if unknown:
        raise ConfigurationError(
            f"Unknown configuration keys in {path}",
            validation_errors=[f"unknown key: {key}" for key in unknown],
        )

    configure(
        checks=data.get("checks"),
        tolerance=data.get("tolerance"),
        default_dtype=data.get("default_dtype"),
    )


def checks_enabled() -> bool:
    """Whether arrays constructed now validate their inputs."""
    return _get_global_state().config.checks


@contextmanager
def checked(enabled: bool = True) -> Generator[None, None, None]:
    """Context manager switching checked mode for arrays built inside.

    Args:
        enabled: True for checked mode, False for unchecked mode.

    Example:
        >>> with nds.checked(False):
        ...     fast = nds.NDArray(1000, 1000)
    """
    state = _get_global_state()
    with state._lock:
        previous = state.config.checks
        state.config = replace(state.config, checks=bool(enabled))
    try:
        yield
    finally:
        with state._lock:
            state.config = replace(state.config, checks=previous)
