"""Tests for configuration objects and environment loading."""

import math

import pytest

from onehitter.config import (
    DEFAULT_TTL_SECONDS,
    CodePolicy,
    OneHitterConfig,
    RateLimitConfig,
)


class TestDefaults:
    def test_defaults(self):
        config = OneHitterConfig()
        assert config.code == CodePolicy()
        assert config.ttl_seconds == DEFAULT_TTL_SECONDS
        assert config.pepper is None
        assert config.production is False
        assert config.driver == "durable"
        assert config.rate_limit is None
        assert config.smtp is None
        assert config.enforces_expiry is True

    def test_unknown_driver_rejected(self):
        with pytest.raises(ValueError, match="Unknown driver"):
            OneHitterConfig(driver="redis")

    def test_enforces_expiry(self):
        assert OneHitterConfig(ttl_seconds=None).enforces_expiry is False
        assert OneHitterConfig(ttl_seconds=0).enforces_expiry is False
        assert OneHitterConfig(ttl_seconds=math.inf).enforces_expiry is False

    def test_frozen(self):
        config = OneHitterConfig()
        with pytest.raises(AttributeError):
            config.pepper = "x"


class TestFromEnv:
    def test_empty_environment(self):
        config = OneHitterConfig.from_env({})
        assert config == OneHitterConfig()

    def test_code_policy(self):
        config = OneHitterConfig.from_env({
            "OTP_LENGTH": "8",
            "OTP_LETTERS_UPPER": "true",
            "OTP_LETTERS_LOWER": "1",
            "OTP_DIGITS": "false",
            "OTP_SPECIAL_CHARS": "TRUE",
        })
        assert config.code == CodePolicy(length=8, upper=True, lower=True, digits=False, special=True)

    def test_unparseable_numbers_use_defaults(self):
        config = OneHitterConfig.from_env({"OTP_LENGTH": "six", "OTP_EXPIRY": "soon"})
        assert config.code.length == 6
        assert config.ttl_seconds == DEFAULT_TTL_SECONDS

    def test_expiry(self):
        assert OneHitterConfig.from_env({"OTP_EXPIRY": "90"}).ttl_seconds == 90

    def test_production_and_pepper(self):
        config = OneHitterConfig.from_env({
            "ONEHITTER_ENV": "Production",
            "OTP_PEPPER": "s3cret",
            "ONEHITTER_ALLOW_INSECURE_HASH": "true",
        })
        assert config.production is True
        assert config.pepper == "s3cret"
        assert config.allow_insecure_hash is True

    def test_empty_pepper_is_none(self):
        assert OneHitterConfig.from_env({"OTP_PEPPER": ""}).pepper is None

    @pytest.mark.parametrize(
        ("raw", "driver"),
        [
            ("durable", "durable"),
            ("mongodb", "durable"),
            ("postgresql", "durable"),
            ("embedded", "embedded"),
            ("SQLite", "embedded"),
        ],
    )
    def test_driver_aliases(self, raw, driver):
        assert OneHitterConfig.from_env({"DB_DRIVER": raw}).driver == driver

    def test_unknown_driver(self):
        with pytest.raises(ValueError, match="DB_DRIVER"):
            OneHitterConfig.from_env({"DB_DRIVER": "cassandra"})

    def test_sqlite_path(self):
        config = OneHitterConfig.from_env({"DB_DRIVER": "sqlite", "SQLITE_PATH": "/tmp/otp.db"})
        assert config.sqlite_path == "/tmp/otp.db"

    def test_limiter_disabled_by_default(self):
        assert OneHitterConfig.from_env({"ONEHITTER_LIMIT_MAX": "3"}).rate_limit is None

    def test_limiter_enabled(self):
        config = OneHitterConfig.from_env({
            "ONEHITTER_ENABLE_INMEM_LIMITER": "true",
            "ONEHITTER_LIMIT_MAX": "3",
            "ONEHITTER_LIMIT_WINDOW_SECONDS": "120",
            "ONEHITTER_LIMIT_COOLDOWN_SECONDS": "30",
        })
        assert config.rate_limit == RateLimitConfig(max_failures=3, window_seconds=120, cooldown_seconds=30)

    def test_limiter_legacy_millisecond_names(self):
        config = OneHitterConfig.from_env({
            "ONEHITTER_ENABLE_INMEM_LIMITER": "true",
            "ONEHITTER_LIMIT_WINDOW_MS": "120000",
            "ONEHITTER_LIMIT_COOLDOWN_MS": "1500",
        })
        assert config.rate_limit.window_seconds == 120
        assert config.rate_limit.cooldown_seconds == 1.5

    def test_limiter_seconds_names_win_over_milliseconds(self):
        config = OneHitterConfig.from_env({
            "ONEHITTER_ENABLE_INMEM_LIMITER": "true",
            "ONEHITTER_LIMIT_WINDOW_SECONDS": "30",
            "ONEHITTER_LIMIT_WINDOW_MS": "120000",
        })
        assert config.rate_limit.window_seconds == 30
        assert config.rate_limit.cooldown_seconds == 60

    def test_message_and_smtp(self):
        config = OneHitterConfig.from_env({
            "OTP_MESSAGE_FROM": "noreply@example.com",
            "OTP_MESSAGE_SUBJECT": "Your code",
            "OTP_URL": "https://example.com",
            "SMTP_HOST": "smtp.example.com",
            "SMTP_PORT": "2525",
            "SMTP_USERNAME": "user",
            "SMTP_PASSWORD": "pass",
            "SMTP_STARTTLS": "false",
        })
        assert config.message.sender == "noreply@example.com"
        assert config.message.subject == "Your code"
        assert config.message.url == "https://example.com"
        assert config.smtp.host == "smtp.example.com"
        assert config.smtp.port == 2525
        assert config.smtp.username == "user"
        assert config.smtp.starttls is False

    def test_reads_os_environ(self, monkeypatch):
        monkeypatch.setenv("OTP_LENGTH", "9")
        assert OneHitterConfig.from_env().code.length == 9
