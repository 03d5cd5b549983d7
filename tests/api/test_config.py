"""Tests for configuration classes."""

import os
import pytest
from unittest.mock import patch


class TestCORSConfig:
    """Tests for CORSConfig class."""

    def test_cors_default_origins(self):
        """Test that default CORS origins are set correctly."""
        with patch.dict(os.environ, {}, clear=True):
            from config import CORSConfig

            config = CORSConfig()

            assert config.allowed_origins == ["http://localhost:8000"]

    def test_cors_parses_env_var(self):
        """Test that CORS origins are parsed from environment variable."""
        env_origins = "  http://example.com  ,http://localhost:3000,,"
        with patch.dict(os.environ, {"CORS_ORIGINS": env_origins}):
            from config import _parse_cors_origins

            origins = _parse_cors_origins()

            assert origins == ["http://example.com", "http://localhost:3000"]

    def test_cors_default_methods_and_headers(self):
        """Test that default methods and headers allow all."""
        from config import CORSConfig

        config = CORSConfig()

        assert config.allow_credentials is True
        assert "*" in config.allow_methods
        assert "*" in config.allow_headers


class TestRateLimitConfig:
    """Tests for RateLimitConfig class."""

    def test_rate_limit_defaults(self):
        """Test default rate limit values."""
        with patch.dict(os.environ, {}, clear=True):
            from config import RateLimitConfig

            config = RateLimitConfig()

            assert config.enabled is True
            assert config.requests_per_minute == 60

    @pytest.mark.parametrize("value, expected", [("TRUE", True), ("false", False), ("0", False)])
    def test_rate_limit_enabled_from_env(self, value, expected):
        """Test RATE_LIMIT_ENABLED parsing."""
        with patch.dict(os.environ, {"RATE_LIMIT_ENABLED": value, "RATE_LIMIT_RPM": "5"}):
            from config import RateLimitConfig

            config = RateLimitConfig()

            assert config.enabled is expected
            assert config.requests_per_minute == 5


class TestSecurityConfig:
    """Tests for SecurityConfig class."""

    def test_secret_key_auto_generates(self):
        """Test that a random secret key is generated when unset."""
        with patch.dict(os.environ, {}, clear=True):
            from config import SecurityConfig

            first = SecurityConfig()
            second = SecurityConfig()

            assert len(first.secret_key) > 20
            assert first.secret_key != second.secret_key

    def test_secret_key_from_env(self):
        """Test that SECRET_KEY is used when set."""
        with patch.dict(os.environ, {"SECRET_KEY": "my-secret"}):
            from config import SecurityConfig

            assert SecurityConfig().secret_key == "my-secret"

    def test_token_ttl(self):
        """Test token lifetime default and override."""
        from config import SecurityConfig

        with patch.dict(os.environ, {}, clear=True):
            assert SecurityConfig().token_ttl == 7 * 24 * 3600
        with patch.dict(os.environ, {"TOKEN_TTL": "60"}):
            assert SecurityConfig().token_ttl == 60


class TestRedisConfig:
    """Tests for RedisConfig class."""

    def test_redis_url_without_password(self):
        """Test URL building from defaults."""
        with patch.dict(os.environ, {}, clear=True):
            from config import RedisConfig

            assert RedisConfig().url == "redis://localhost:6379/0"

    def test_redis_url_with_password(self):
        """Test URL building with credentials."""
        env = {"REDIS_HOST": "cache", "REDIS_PORT": "6380", "REDIS_DB": "2", "REDIS_PASSWORD": "pw"}
        with patch.dict(os.environ, env):
            from config import RedisConfig

            assert RedisConfig().url == "redis://:pw@cache:6380/2"


class TestGameConfig:
    """Tests for GameConfig class."""

    def test_game_config_defaults(self):
        """Test default game settings."""
        with patch.dict(os.environ, {}, clear=True):
            from config import GameConfig

            config = GameConfig()

            assert config.deal_one is True
            assert config.key_prefix == "arcade21:"

    def test_game_config_from_env(self):
        """Test DEAL_ONE and KEY_PREFIX."""
        with patch.dict(os.environ, {"DEAL_ONE": "false", "KEY_PREFIX": "test:"}):
            from config import GameConfig

            config = GameConfig()

            assert config.deal_one is False
            assert config.key_prefix == "test:"

    def test_game_config_frozen(self):
        """Test that config values cannot be reassigned."""
        from dataclasses import FrozenInstanceError

        from config import GameConfig

        config = GameConfig()
        with pytest.raises(FrozenInstanceError):
            config.deal_one = False


class TestAppConfig:
    """Tests for AppConfig class."""

    def test_app_config_defaults(self):
        """Test application defaults."""
        with patch.dict(os.environ, {}, clear=True):
            from config import AppConfig

            config = AppConfig()

            assert config.debug is False
            assert config.port == 8000
            assert config.log_level == "INFO"
            assert config.store_backend == "auto"

    def test_app_config_from_env(self):
        """Test overrides from the environment."""
        env = {"DEBUG": "true", "PORT": "9000", "LOG_LEVEL": "debug", "STORE_BACKEND": "Memory"}
        with patch.dict(os.environ, env):
            from config import AppConfig

            config = AppConfig()

            assert config.debug is True
            assert config.port == 9000
            assert config.log_level == "DEBUG"
            assert config.store_backend == "memory"

    def test_unknown_store_backend(self):
        """Test an unknown backend name is rejected."""
        with patch.dict(os.environ, {"STORE_BACKEND": "sqlite"}):
            from config import AppConfig

            with pytest.raises(ValueError):
                AppConfig()

    def test_app_config_has_nested_configs(self):
        """Test nested sections are built."""
        from config import AppConfig, CORSConfig, GameConfig, RateLimitConfig, RedisConfig, SecurityConfig

        config = AppConfig()

        assert isinstance(config.cors, CORSConfig)
        assert isinstance(config.rate_limit, RateLimitConfig)
        assert isinstance(config.security, SecurityConfig)
        assert isinstance(config.redis, RedisConfig)
        assert isinstance(config.game, GameConfig)
