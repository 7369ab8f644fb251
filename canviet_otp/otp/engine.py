"""
OTP Engine
==========
Issues and verifies one-time passcodes held in a shared key-value store.

Per ``(purpose, subject)`` the engine keeps two keys with the same ttl:

- ``otp:{purpose}:{subject}``: the salted digest record (never the code)
- ``otp:{purpose}:{subject}:attempts``: failed verification count

Issuance is serialized by ``SET NX``; verification by WATCH/MULTI/EXEC. No
in-process locks are taken and no store operation is retried here.
"""

import time
from typing import Optional, Tuple

import structlog

from canviet_otp import metrics
from canviet_otp.config import OTPSettings
from canviet_otp.phone_utils import mask_destination
from canviet_otp.providers.base import CodeSender, SendResult
from canviet_otp.store.base import KeyValueStore

from .exceptions import ConfigurationError, DeliveryFailedError, InvalidSubjectError, OTPAlreadyIssuedError
from .hashing import generate_otp, generate_salt, hash_otp, verify_otp_hash
from .models import DeliveryPolicy, IssueResult, OTPChannel, OTPReason, OTPRecord, VerifyResult
from .validators import SubjectValidator

logger = structlog.get_logger(__name__)


def record_keys(purpose: str, subject: str) -> Tuple[str, str]:
    """Return the (record, attempts) keys for a purpose and subject."""
    key = f"otp:{purpose}:{subject}"
    return key, f"{key}:attempts"


class OTPEngine:
    """
    OTP issuance and verification for one delivery channel.

    Args:
        store: Shared key-value store
        settings: OTP settings (pepper, attempts, code length)
        channel: Channel label used in logs and metrics
        sender: Delivers the plaintext code; None skips delivery
        policy: Whether a failed delivery rolls back the issuance
        validator: Subject precondition check
        ttl: Record lifetime in seconds; defaults to ``settings.ttl_seconds``
    """

    def __init__(
        self,
        store: KeyValueStore,
        settings: OTPSettings,
        channel: OTPChannel = OTPChannel.EMAIL,
        sender: Optional[CodeSender] = None,
        policy: DeliveryPolicy = DeliveryPolicy.BEST_EFFORT,
        validator: Optional[SubjectValidator] = None,
        ttl: Optional[int] = None,
    ):
        if not settings.pepper and not settings.dev_mode:
            raise ConfigurationError("OTP_PEPPER must be configured outside dev mode")
        if settings.max_attempts < 1:
            raise ConfigurationError("OTP_MAX_ATTEMPTS must be at least 1")
        self.store = store
        self.settings = settings
        self.channel = channel
        self.sender = sender
        self.policy = policy
        self.validator = validator or SubjectValidator()
        self.ttl = ttl if ttl is not None else settings.ttl_seconds
        if self.ttl < 1:
            raise ConfigurationError("OTP ttl must be at least 1 second")

    async def issue(self, subject: str, purpose: str, length: Optional[int] = None) -> IssueResult:
        """
        Issue a code for ``subject`` under ``purpose``.

        Args:
            subject: Email address or phone number
            purpose: Use-case namespace (e.g. "email-verify")
            length: Code length; defaults to the configured length

        Returns:
            IssueResult with the plaintext code for out-of-band delivery

        Raises:
            InvalidSubjectError: Subject failed the channel check
            OTPAlreadyIssuedError: An unexpired code is outstanding
            DeliveryFailedError: Required delivery failed; state rolled back
        """
        if not purpose:
            raise ValueError("purpose must be a non-empty string")
        try:
            subject = await self.validator.validate(subject)
        except InvalidSubjectError:
            metrics.record_issue(self.channel.value, OTPReason.INVALID_SUBJECT.value)
            raise

        code = generate_otp(length if length is not None else self.settings.code_length)
        salt = generate_salt()
        record = OTPRecord(
            salt=salt,
            digest=hash_otp(code, salt, self.settings.pepper),
            max_attempts=self.settings.max_attempts,
        )
        key, attempts_key = record_keys(purpose, subject)
        masked = mask_destination(subject)

        stored = record.dumps()
        created = await self.store.set(key, stored, ttl=self.ttl, nx=True)
        if not created:
            logger.info("OTP already outstanding", channel=self.channel.value, purpose=purpose, subject=masked)
            metrics.record_issue(self.channel.value, OTPReason.ALREADY_ISSUED.value)
            raise OTPAlreadyIssuedError()
        await self.store.set(attempts_key, "0", ttl=self.ttl)

        delivered = await self._deliver(subject, code, purpose, key, attempts_key, stored)

        fields = {
            "channel": self.channel.value,
            "purpose": purpose,
            "subject": masked,
            "ttl": self.ttl,
            "delivered": delivered,
        }
        if self.settings.may_log_codes:
            fields["code"] = code
        logger.info("OTP issued", **fields)
        metrics.record_issue(self.channel.value, "issued")
        return IssueResult(code=code, ttl=self.ttl, delivered=delivered)

    async def _deliver(
        self,
        subject: str,
        code: str,
        purpose: str,
        key: str,
        attempts_key: str,
        stored: str,
    ) -> bool:
        if self.sender is None:
            return False

        started = time.perf_counter()
        error: Optional[BaseException] = None
        try:
            result = await self.sender.send_code(subject, code, self.ttl)
        except Exception as e:
            error = e
            result = SendResult(success=False, error_code=type(e).__name__, error_message=str(e))
        except BaseException:
            # cancelled mid-send: a required code must not stay outstanding
            if self.policy is DeliveryPolicy.REQUIRED:
                await self._rollback(key, attempts_key, stored)
            raise
        finally:
            metrics.record_delivery(self.channel.value, time.perf_counter() - started)

        if result.success:
            return not result.skipped

        masked = mask_destination(subject)
        if self.policy is DeliveryPolicy.REQUIRED:
            await self._rollback(key, attempts_key, stored)
            logger.error(
                "OTP delivery failed, issuance rolled back",
                channel=self.channel.value,
                purpose=purpose,
                subject=masked,
                provider=self.sender.name,
                error=result.error_message,
            )
            metrics.record_issue(self.channel.value, OTPReason.DELIVERY_FAILED.value)
            raise DeliveryFailedError(
                "Unable to deliver verification code",
                provider_error=result.error_message,
            ) from error

        logger.warning(
            "OTP delivery failed, code remains valid",
            channel=self.channel.value,
            purpose=purpose,
            subject=masked,
            provider=self.sender.name,
            error=result.error_message,
        )
        return False

    async def _rollback(self, key: str, attempts_key: str, stored: str) -> bool:
        """
        Delete the record (and its counter) only if it is still the one written.

        A record consumed and re-issued by another request in the meantime is
        left alone.
        """
        async with self.store.watch(key) as tx:
            if await tx.get(key) != stored:
                logger.info("OTP rollback skipped, record replaced", channel=self.channel.value)
                return False
            tx.multi()
            tx.delete(key, attempts_key)
            return await tx.execute() is not None

    async def verify(self, subject: str, purpose: str, code: str) -> VerifyResult:
        """
        Verify a submitted code.

        Expected outcomes are returned, never raised; only store errors
        propagate.

        Args:
            subject: Email address or phone number
            purpose: Use-case namespace the code was issued under
            code: Code submitted by the user

        Returns:
            VerifyResult; ``ok`` only on a digest match
        """
        try:
            subject = self.validator.normalize(subject)
        except InvalidSubjectError:
            return self._verified(VerifyResult.failure(OTPReason.INVALID_SUBJECT), purpose, subject)

        key, attempts_key = record_keys(purpose, subject)
        submitted = "" if code is None else str(code).strip()

        async with self.store.watch(key, attempts_key) as tx:
            raw = await tx.get(key)
            if raw is None:
                return self._verified(VerifyResult.failure(OTPReason.EXPIRED_OR_MISSING), purpose, subject)
            raw_attempts = await tx.get(attempts_key)
            try:
                record = OTPRecord.loads(raw)
                attempts = int(raw_attempts) if raw_attempts is not None else 0
            except ValueError as e:
                logger.warning(
                    "Unreadable OTP state treated as missing",
                    channel=self.channel.value,
                    purpose=purpose,
                    subject=mask_destination(subject),
                    error=str(e),
                )
                return self._verified(VerifyResult.failure(OTPReason.EXPIRED_OR_MISSING), purpose, subject)

            if attempts >= record.max_attempts:
                return self._verified(VerifyResult.failure(OTPReason.TOO_MANY_ATTEMPTS), purpose, subject)

            matched = verify_otp_hash(submitted, record.salt, record.digest, self.settings.pepper)

            # counter re-created by INCR must not outlive its record
            remaining = -1
            if not matched and raw_attempts is None:
                remaining = await tx.ttl(key)

            tx.multi()
            if matched:
                tx.delete(key, attempts_key)
            else:
                tx.incr(attempts_key)
                if remaining > 0:
                    tx.expire(attempts_key, remaining)
            results = await tx.execute()

        if results is None:
            return self._verified(VerifyResult.failure(OTPReason.CONCURRENT_UPDATE), purpose, subject)
        if matched:
            return self._verified(VerifyResult.success(), purpose, subject)
        return self._verified(VerifyResult.failure(OTPReason.INVALID), purpose, subject)

    def _verified(self, result: VerifyResult, purpose: str, subject: str) -> VerifyResult:
        outcome = "verified" if result.ok else result.reason.value
        metrics.record_verify(self.channel.value, outcome)
        log = logger.info if result.ok else logger.warning
        log(
            "OTP verification",
            channel=self.channel.value,
            purpose=purpose,
            subject=mask_destination(subject or ""),
            outcome=outcome,
        )
        return result
