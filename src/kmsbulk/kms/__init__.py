"""Cloud KMS client and models."""

from kmsbulk.kms.client import (
    KmsAuthError,
    KmsClient,
    KmsError,
    KmsTransientError,
    is_retryable_kms_error,
)
from kmsbulk.kms.models import CryptoKeyInfo, CryptoKeyName

__all__ = [
    "CryptoKeyInfo",
    "CryptoKeyName",
    "KmsAuthError",
    "KmsClient",
    "KmsError",
    "KmsTransientError",
    "is_retryable_kms_error",
]
