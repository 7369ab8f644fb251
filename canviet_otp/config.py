"""
OTP Configuration
=================
Settings loaded from environment variables.
"""

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

DEFAULT_SMS_TEMPLATE = "Your CanViet Exchange verification code is: {code}"


def _env_bool(env: Mapping[str, str], name: str, default: bool = False) -> bool:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(env: Mapping[str, str], default: int, *names: str) -> int:
    for name in names:
        raw = env.get(name)
        if raw is not None and raw.strip() != "":
            return int(raw)
    return default


def _env_list(env: Mapping[str, str], name: str, default: str) -> Tuple[str, ...]:
    raw = env.get(name) or default
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass
class RedisSettings:
    """Connection settings for the Redis store."""
    url: str = "redis://localhost:6379/0"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "RedisSettings":
        env = os.environ if env is None else env
        return cls(url=env.get("REDIS_URL") or cls.url)


@dataclass
class TwilioSettings:
    """Twilio credentials for SMS delivery and number lookup."""
    account_sid: str = ""
    auth_token: str = ""
    phone_number: str = ""
    messaging_service_sid: str = ""
    enable_lookup: bool = True
    lookup_countries: Tuple[str, ...] = ("CA", "US")
    sms_template: str = DEFAULT_SMS_TEMPLATE

    @property
    def is_configured(self) -> bool:
        return bool(self.account_sid and self.auth_token)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "TwilioSettings":
        env = os.environ if env is None else env
        return cls(
            account_sid=env.get("TWILIO_ACCOUNT_SID", ""),
            auth_token=env.get("TWILIO_AUTH_TOKEN", ""),
            phone_number=env.get("TWILIO_PHONE_NUMBER", ""),
            messaging_service_sid=env.get("TWILIO_MESSAGING_SERVICE_SID", ""),
            enable_lookup=_env_bool(env, "TWILIO_ENABLE_LOOKUP", True),
            lookup_countries=_env_list(env, "TWILIO_LOOKUP_COUNTRIES", "CA,US"),
            sms_template=env.get("OTP_SMS_TEMPLATE") or DEFAULT_SMS_TEMPLATE,
        )


@dataclass
class SmtpSettings:
    """SMTP settings for email delivery."""
    host: str = "smtp.gmail.com"
    port: int = 465
    username: str = ""
    password: str = ""
    from_email: str = ""
    from_name: str = "CanViet Exchange"
    timeout: float = 15.0

    @property
    def is_configured(self) -> bool:
        return bool(self.username and self.password)

    @property
    def use_ssl(self) -> bool:
        return self.port == 465

    @property
    def sender(self) -> str:
        return self.from_email or self.username or "no-reply@example.com"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "SmtpSettings":
        env = os.environ if env is None else env
        return cls(
            host=env.get("EMAIL_HOST") or cls.host,
            port=_env_int(env, cls.port, "EMAIL_PORT"),
            username=env.get("CANVIETEXCHANGE_EMAIL_USER", ""),
            password=env.get("CANVIETEXCHANGE_EMAIL_APP_PASSWORD", ""),
            from_email=env.get("EMAIL_FROM", ""),
            from_name=env.get("EMAIL_FROM_NAME") or cls.from_name,
        )


@dataclass
class OTPSettings:
    """
    Configuration for OTP issuance and verification.

    ``max_attempts`` is copied into each record at issuance, so changing it
    never affects codes already outstanding.
    """
    pepper: str = ""
    ttl_seconds: int = 300  # email channel
    phone_ttl_seconds: int = 60
    max_attempts: int = 5
    code_length: int = 6
    dev_mode: bool = False
    log_codes: bool = False
    phone_calling_codes: Tuple[str, ...] = ("1",)
    log_level: str = "INFO"
    log_json: bool = False

    redis: RedisSettings = field(default_factory=RedisSettings)
    twilio: TwilioSettings = field(default_factory=TwilioSettings)
    smtp: SmtpSettings = field(default_factory=SmtpSettings)

    @property
    def may_log_codes(self) -> bool:
        """Plaintext codes may only reach logs in dev mode or when explicitly enabled."""
        return self.dev_mode or self.log_codes

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "OTPSettings":
        """
        Build settings from environment variables.

        Args:
            env: Mapping to read instead of ``os.environ``

        Returns:
            Populated settings
        """
        env = os.environ if env is None else env
        return cls(
            pepper=env.get("OTP_PEPPER", ""),
            ttl_seconds=_env_int(env, 300, "OTP_TTL_SECONDS", "OTP_TTL_SEC"),
            phone_ttl_seconds=_env_int(env, 60, "OTP_PHONE_TTL_SECONDS"),
            max_attempts=_env_int(env, 5, "OTP_MAX_ATTEMPTS"),
            code_length=_env_int(env, 6, "OTP_LENGTH"),
            dev_mode=_env_bool(env, "OTP_DEV_MODE"),
            log_codes=_env_bool(env, "LOG_OTP_CODES"),
            phone_calling_codes=_env_list(env, "OTP_PHONE_CALLING_CODES", "1"),
            log_level=env.get("LOG_LEVEL") or "INFO",
            log_json=(env.get("LOG_FORMAT") or "console").lower() == "json",
            redis=RedisSettings.from_env(env),
            twilio=TwilioSettings.from_env(env),
            smtp=SmtpSettings.from_env(env),
        )
