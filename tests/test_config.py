"""Unit tests for RenderConfig."""

import pytest


class TestRenderConfig:
    """Tests for defaults and validation."""

    def test_defaults(self):
        """Test every feature is off and one centred sample is taken by default."""
        from src.whitted.core.config import DEFAULT_MAX_RECURSION_DEPTH, RenderConfig

        config = RenderConfig()
        config.validate()
        assert not config.enable_shadows
        assert not config.enable_reflections
        assert not config.enable_texture
        assert not config.enable_parallelism
        assert config.samples == 1
        assert config.max_recursion_depth == DEFAULT_MAX_RECURSION_DEPTH

    def test_aspect_ratio(self):
        """Test aspect_ratio is width / height."""
        from src.whitted.core.config import RenderConfig

        assert RenderConfig(width=320, height=240).aspect_ratio == pytest.approx(4.0 / 3.0)

    @pytest.mark.parametrize(
        "options",
        [
            {"width": 0},
            {"height": 0},
            {"width": 4096},
            {"samples": 0},
            {"max_recursion_depth": -1},
            {"max_recursion_depth": 65},
            {"seed": -1},
            {"seed": 2**32},
            {"band_rows": 0},
            {"width": 1.5},
            {"samples": True},
        ],
    )
    def test_invalid_options(self, options):
        """Test out-of-range and mistyped options raise ConfigError."""
        from src.whitted.core.config import RenderConfig
        from src.whitted.core.errors import ConfigError

        with pytest.raises(ConfigError):
            RenderConfig(**options).validate()

    def test_depth_limit_accepted(self):
        """Test the deepest supported recursion is valid."""
        from src.whitted.core.config import MAX_RECURSION_DEPTH, RenderConfig

        RenderConfig(max_recursion_depth=MAX_RECURSION_DEPTH).validate()
        RenderConfig(max_recursion_depth=0).validate()

    def test_config_error_is_value_error(self):
        """Test callers catching ValueError also catch ConfigError."""
        from src.whitted.core.config import RenderConfig

        with pytest.raises(ValueError):
            RenderConfig(samples=0).validate()


class TestRenderConfigDict:
    """Tests for dictionary conversion."""

    def test_round_trip(self):
        """Test to_dict output rebuilds an equal config."""
        from src.whitted.core.config import RenderConfig

        config = RenderConfig(width=64, height=32, enable_shadows=True, samples=4, seed=7)
        assert RenderConfig.from_dict(config.to_dict()) == config

    def test_missing_keys_keep_defaults(self):
        """Test partial dictionaries fill in defaults."""
        from src.whitted.core.config import RenderConfig

        config = RenderConfig.from_dict({"enable_reflections": True})
        assert config.enable_reflections
        assert config.width == RenderConfig().width

    def test_unknown_key_raises(self):
        """Test misspelled options are reported."""
        from src.whitted.core.config import RenderConfig
        from src.whitted.core.errors import ConfigError

        with pytest.raises(ConfigError, match="enable_shadow"):
            RenderConfig.from_dict({"enable_shadow": True})

    def test_from_dict_validates(self):
        """Test from_dict rejects out-of-range values."""
        from src.whitted.core.config import RenderConfig
        from src.whitted.core.errors import ConfigError

        with pytest.raises(ConfigError):
            RenderConfig.from_dict({"width": -5})
