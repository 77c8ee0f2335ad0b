"""
Tests for settings, policy and logging configuration.
"""

import json
import logging

import pytest
from pydantic import ValidationError

from agri_otp.core.config import Settings
from agri_otp.core.logging_config import setup_logging
from agri_otp.core.policy import OtpPolicy, requires_otp_for_role
from agri_otp.models.otp import Category, Role


class TestSettings:
    """Tests for environment-driven settings"""

    def test_defaults_match_reference_policy(self):
        """Test default settings give the standard OTP policy"""
        s = Settings()
        assert s.OTP_CODE_LENGTH == 6
        assert s.OTP_ADMIN_CODE_LENGTH == 8
        assert s.OTP_TTL_SECONDS == 300
        assert s.OTP_EXTENDED_TTL_SECONDS == 600
        assert s.OTP_MAX_FAILED_ATTEMPTS == 3
        assert s.OTP_LOCKOUT_WINDOW_SECONDS == 900
        assert s.OTP_REQUIRED_ROLES == ["ADMIN", "ANALYST", "GOVERNMENT"]

    def test_reads_environment(self, monkeypatch):
        """Test settings are read from environment variables"""
        monkeypatch.setenv("OTP_TTL_SECONDS", "120")
        monkeypatch.setenv("OTP_MAX_FAILED_ATTEMPTS", "5")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        s = Settings()
        assert s.OTP_TTL_SECONDS == 120
        assert s.OTP_MAX_FAILED_ATTEMPTS == 5
        assert s.LOG_LEVEL == "DEBUG"

    def test_required_roles_comma_separated(self, monkeypatch):
        """Test required roles parse from a comma-separated list"""
        monkeypatch.setenv("OTP_REQUIRED_ROLES", "admin, farmer")
        assert Settings().OTP_REQUIRED_ROLES == ["ADMIN", "FARMER"]

    def test_required_roles_json(self, monkeypatch):
        """Test required roles parse from a JSON list"""
        monkeypatch.setenv("OTP_REQUIRED_ROLES", '["buyer"]')
        assert Settings().OTP_REQUIRED_ROLES == ["BUYER"]

    @pytest.mark.parametrize("field", [
        "OTP_CODE_LENGTH",
        "OTP_TTL_SECONDS",
        "OTP_MAX_FAILED_ATTEMPTS",
        "OTP_LOCKOUT_WINDOW_SECONDS",
        "OTP_ENTRY_SWEEP_INTERVAL_SECONDS",
    ])
    def test_rejects_non_positive(self, field):
        """Test non-positive lengths, TTLs and periods are refused"""
        with pytest.raises(ValidationError):
            Settings(**{field: 0})

    def test_rejects_unknown_log_level(self):
        """Test an unknown log level is refused"""
        with pytest.raises(ValidationError):
            Settings(LOG_LEVEL="LOUD")


class TestPolicy:
    """Tests for OtpPolicy"""

    def test_from_settings(self):
        """Test the policy is built from settings"""
        policy = OtpPolicy.from_settings(Settings(OTP_CODE_LENGTH=4, OTP_EXTENDED_TTL_SECONDS=1200))
        assert policy.code_length == 4
        assert policy.admin_code_length == 8
        assert policy.ttl_for(Category.SENSITIVE_OPERATION) == 1200

    def test_category_lookup(self):
        """Test code length and TTL lookup per category"""
        policy = OtpPolicy()
        assert policy.code_length_for(Category.ADMIN_OPERATION) == 8
        assert policy.code_length_for(Category.SENSITIVE_OPERATION) == 6
        assert policy.ttl_for(Category.ADMIN_OPERATION) == 300
        assert policy.ttl_for(Category.SENSITIVE_OPERATION) == 600

    def test_policy_is_immutable(self):
        """Test the policy cannot be modified"""
        with pytest.raises(ValidationError):
            OtpPolicy().code_length = 4

    @pytest.mark.parametrize("role,required", [
        (Role.ADMIN, True),
        (Role.ANALYST, True),
        (Role.GOVERNMENT, True),
        (Role.FARMER, False),
        (Role.BUYER, False),
        ("admin", True),
        ("farmer", False),
    ])
    def test_requires_otp_for_role(self, role, required):
        """Test which roles require an OTP by default"""
        assert requires_otp_for_role(role, Settings()) is required

    def test_required_roles_configurable(self):
        """Test the roles requiring an OTP can be configured"""
        s = Settings(OTP_REQUIRED_ROLES="FARMER")
        assert requires_otp_for_role(Role.FARMER, s) is True
        assert requires_otp_for_role(Role.ADMIN, s) is False


class TestLogging:
    """Tests for logging setup"""

    def test_json_logs(self, capsys, restore_logging):
        """Test JSON lines carry level, logger, service and location"""
        setup_logging("INFO", json_logs=True, service_name="otp-test")
        logging.getLogger("agri_otp.test").warning("Account locked for email: a@x.com")

        line = capsys.readouterr().out.strip().splitlines()[-1]
        record = json.loads(line)
        assert record["message"] == "Account locked for email: a@x.com"
        assert record["level"] == "WARNING"
        assert record["logger"] == "agri_otp.test"
        assert record["service"] == "otp-test"
        assert record["thread"] == "MainThread"
        assert record["timestamp"].endswith("Z")
        assert record["location"].startswith("test_config.test_json_logs:")

    def test_info_has_no_location(self, capsys, restore_logging):
        """Test location is only added for warnings and above"""
        setup_logging("INFO", json_logs=True)
        logging.getLogger("agri_otp.test").info("OTP generated")

        record = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert "location" not in record
        assert record["service"] == "agri-otp"

    def test_errors_go_to_stderr(self, capsys, restore_logging):
        """Test errors are split from request logs"""
        setup_logging("INFO", json_logs=False)
        logging.getLogger("agri_otp.test").info("issued")
        logging.getLogger("agri_otp.test").error("sweep failed")

        captured = capsys.readouterr()
        assert "issued" in captured.out
        assert "sweep failed" not in captured.out
        assert "agri_otp.test - ERROR - [MainThread] sweep failed" in captured.err

    def test_plain_logs_and_level(self, capsys, restore_logging):
        """Test development format and level from settings"""
        setup_logging("DEBUG", json_logs=False)
        logging.getLogger("agri_otp.test").debug("sweep done")

        out = capsys.readouterr().out
        assert "agri_otp.test - DEBUG" in out
        assert "sweep done" in out
        assert logging.getLogger().level == logging.DEBUG

    def test_scheduler_chatter_is_quieted(self, restore_logging):
        """Test APScheduler per-run INFO messages are suppressed"""
        setup_logging("DEBUG", json_logs=True)
        assert logging.getLogger("apscheduler").level == logging.WARNING

        setup_logging("ERROR", json_logs=True)
        assert logging.getLogger("apscheduler").level == logging.ERROR
