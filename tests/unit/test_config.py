"""Tests for ndstride configuration."""
from __future__ import annotations

from pathlib import Path

import pytest


class TestNDStrideConfig:
    """Tests for the NDStrideConfig dataclass."""

    def test_defaults(self) -> None:
        """Default tolerance and dtype."""
        from ndstride.config import NDStrideConfig

        config = NDStrideConfig()
        assert config.tolerance == 1e-12
        assert config.default_dtype == "float64"
        assert config.checks is __debug__

    def test_negative_tolerance_rejected(self) -> None:
        """Negative tolerance raises ConfigurationError."""
        from ndstride.config import NDStrideConfig
        from ndstride.exceptions import ConfigurationError

        with pytest.raises(ConfigurationError) as exc_info:
            NDStrideConfig(tolerance=-1.0)
        assert exc_info.value.config_key == "tolerance"

    def test_unknown_dtype_rejected(self) -> None:
        """Unsupported default dtype raises ConfigurationError."""
        from ndstride.config import NDStrideConfig
        from ndstride.exceptions import ConfigurationError

        with pytest.raises(ConfigurationError):
            NDStrideConfig(default_dtype="not_a_type")


class TestFromEnv:
    """Tests for environment configuration."""

    def test_checks_disabled_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """NDSTRIDE_CHECKS=0 disables checks."""
        from ndstride.config import NDStrideConfig

        monkeypatch.setenv("NDSTRIDE_CHECKS", "0")
        assert NDStrideConfig.from_env().checks is False

    def test_checks_enabled_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """NDSTRIDE_CHECKS=true enables checks."""
        from ndstride.config import NDStrideConfig

        monkeypatch.setenv("NDSTRIDE_CHECKS", "true")
        assert NDStrideConfig.from_env().checks is True

    def test_invalid_checks_value(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Unrecognized NDSTRIDE_CHECKS raises."""
        from ndstride.config import NDStrideConfig
        from ndstride.exceptions import ConfigurationError

        monkeypatch.setenv("NDSTRIDE_CHECKS", "maybe")
        with pytest.raises(ConfigurationError):
            NDStrideConfig.from_env()

    def test_tolerance_and_dtype_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Tolerance and default dtype are read from the environment."""
        from ndstride.config import NDStrideConfig

        monkeypatch.setenv("NDSTRIDE_TOLERANCE", "1e-6")
        monkeypatch.setenv("NDSTRIDE_DEFAULT_DTYPE", "float32")
        config = NDStrideConfig.from_env()
        assert config.tolerance == 1e-6
        assert config.default_dtype == "float32"

    def test_invalid_tolerance(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Non-numeric tolerance raises."""
        from ndstride.config import NDStrideConfig
        from ndstride.exceptions import ConfigurationError

        monkeypatch.setenv("NDSTRIDE_TOLERANCE", "tiny")
        with pytest.raises(ConfigurationError):
            NDStrideConfig.from_env()


class TestConfigure:
    """Tests for configure/get_config."""

    def test_configure_updates(self) -> None:
        """configure changes only the given settings."""
        import ndstride as nds

        nds.configure(tolerance=1e-3)
        config = nds.get_config()
        assert config.tolerance == 1e-3
        assert config.checks is True

    def test_get_config_returns_copy(self) -> None:
        """Mutating the returned config does not change global state."""
        import ndstride as nds

        config = nds.get_config()
        config.tolerance = 5.0
        assert nds.get_config().tolerance == 1e-12

    def test_invalid_configure_keeps_state(self) -> None:
        """A rejected update leaves configuration unchanged."""
        import ndstride as nds

        with pytest.raises(nds.ConfigurationError):
            nds.configure(tolerance=-1.0)
        assert nds.get_config().tolerance == 1e-12

    def test_reset(self) -> None:
        """reset=True restores defaults."""
        import ndstride as nds

        nds.configure(tolerance=0.5, default_dtype="float32")
        nds.configure(reset=True)
        config = nds.get_config()
        assert config.tolerance == 1e-12
        assert config.default_dtype == "float64"

    def test_default_dtype_used_by_arrays(self) -> None:
        """New arrays use the configured default dtype."""
        import torch

        import ndstride as nds

        nds.configure(default_dtype="float32")
        assert nds.NDArray(2).dtype == torch.float32


class TestCheckedContext:
    """Tests for the checked() context manager."""

    def test_switches_and_restores(self) -> None:
        """checked(False) disables checks only inside the block."""
        import ndstride as nds

        assert nds.checks_enabled()
        with nds.checked(False):
            assert not nds.checks_enabled()
        assert nds.checks_enabled()

    def test_restores_after_error(self) -> None:
        """Mode is restored when the block raises."""
        import ndstride as nds

        with pytest.raises(RuntimeError):
            with nds.checked(False):
                raise RuntimeError("boom")
        assert nds.checks_enabled()

    def test_mode_captured_at_construction(self) -> None:
        """Arrays keep the mode they were built with."""
        import ndstride as nds

        with nds.checked(False):
            fast = nds.NDArray(2, 2)
        safe = nds.NDArray(2, 2)
        assert fast.checked is False
        assert safe.checked is True
        assert fast.slice_at(0).checked is False


class TestLoadConfig:
    """Tests for YAML configuration files."""

    def test_load_config(self, tmp_path: Path) -> None:
        """Settings are read from YAML."""
        import ndstride as nds

        path = tmp_path / "ndstride.yaml"
        path.write_text("checks: false\ntolerance: 1.0e-10\ndefault_dtype: complex128\n")
        nds.load_config(str(path))
        config = nds.get_config()
        assert config.checks is False
        assert config.tolerance == 1e-10
        assert config.default_dtype == "complex128"

    def test_missing_file(self, tmp_path: Path) -> None:
        """Missing file raises FileNotFoundError."""
        import ndstride as nds

        with pytest.raises(FileNotFoundError):
            nds.load_config(str(tmp_path / "missing.yaml"))

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        """A YAML list is rejected."""
        import ndstride as nds

        path = tmp_path / "bad.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(nds.ConfigurationError):
            nds.load_config(str(path))

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Malformed YAML is rejected."""
        import ndstride as nds

        path = tmp_path / "broken.yaml"
        path.write_text("checks: [unclosed\n")
        with pytest.raises(nds.ConfigurationError):
            nds.load_config(str(path))

    def test_unknown_keys(self, tmp_path: Path) -> None:
        """Unknown keys are listed in the error."""
        import ndstride as nds

        path = tmp_path / "extra.yaml"
        path.write_text("checks: true\nspeed: fast\n")
        with pytest.raises(nds.ConfigurationError) as exc_info:
            nds.load_config(str(path))
        assert exc_info.value.validation_errors == ["unknown key: speed"]
