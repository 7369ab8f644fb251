"""
OTP Models
==========
Stored records, result types and enums for OTP issuance and verification.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class OTPChannel(str, Enum):
    """Delivery channel an engine serves."""
    EMAIL = "email"
    PHONE = "phone"


class OTPReason(str, Enum):
    """Machine-readable outcome reasons."""
    INVALID = "invalid"
    EXPIRED_OR_MISSING = "expired-or-missing"
    TOO_MANY_ATTEMPTS = "too-many-attempts"
    CONCURRENT_UPDATE = "concurrent-update"
    ALREADY_ISSUED = "already-issued"
    INVALID_SUBJECT = "invalid-subject"
    DELIVERY_FAILED = "delivery-failed"


class DeliveryPolicy(str, Enum):
    """How a failed code delivery affects the issued record."""
    REQUIRED = "required"  # roll back and fail the issuance
    BEST_EFFORT = "best_effort"  # keep the record, report delivered=False


@dataclass(frozen=True)
class OTPRecord:
    """Value stored under the OTP key. The plaintext code is never part of it."""
    salt: str
    digest: str
    max_attempts: int

    def dumps(self) -> str:
        return json.dumps(
            {"salt": self.salt, "codeHash": self.digest, "maxAttempts": self.max_attempts},
            separators=(",", ":"),
        )

    @classmethod
    def loads(cls, raw: str) -> "OTPRecord":
        """
        Parse a stored record.

        Raises:
            ValueError: If the value is not a well-formed record
        """
        try:
            data = json.loads(raw)
            return cls(
                salt=str(data["salt"]),
                digest=str(data["codeHash"]),
                max_attempts=int(data["maxAttempts"]),
            )
        except (TypeError, KeyError, json.JSONDecodeError) as e:
            raise ValueError(f"Malformed OTP record: {e}") from e


@dataclass(frozen=True)
class IssueResult:
    """Outcome of a successful issuance."""
    code: str
    ttl: int
    delivered: bool = True


@dataclass(frozen=True)
class VerifyResult:
    """Outcome of a verification attempt."""
    ok: bool
    reason: Optional[OTPReason] = None

    @classmethod
    def success(cls) -> "VerifyResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, reason: OTPReason) -> "VerifyResult":
        return cls(ok=False, reason=reason)
