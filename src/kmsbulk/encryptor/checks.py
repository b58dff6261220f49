"""Pre-flight checks for the token, the crypto key and the bucket.

Nothing is created or modified: each check is a read-only call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from kmsbulk.auth.tokens import TokenError, TokenProvider
from kmsbulk.kms.client import KmsClient, KmsError
from kmsbulk.kms.models import CryptoKeyName
from kmsbulk.storage.client import GcsClient, StorageError
from kmsbulk.storage.destination import Destination

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckResult:
    """Outcome of one check."""

    name: str
    ok: bool
    detail: str

    def to_dict(self) -> dict[str, object]:
        return {"name": self.name, "ok": self.ok, "detail": self.detail}


def run_checks(
    kms: KmsClient,
    storage: GcsClient,
    key: CryptoKeyName,
    destination: Destination | None,
    token_provider: TokenProvider,
) -> list[CheckResult]:
    """Verify that a run could reach everything it needs.

    The key and bucket checks are skipped when no token can be obtained,
    since they would fail for the same reason.

    Args:
        kms: Client used to read the crypto key.
        storage: Client used to read the bucket.
        key: Crypto key to look up.
        destination: Bucket to look up (check skipped when None).
        token_provider: Source of bearer tokens.

    Returns:
        One CheckResult per check, in the order they ran.
    """
    results: list[CheckResult] = []

    try:
        token_provider.get_token()
    except TokenError as e:
        results.append(CheckResult("access token", False, str(e)))
        return results
    results.append(CheckResult("access token", True, "bearer token obtained"))

    try:
        info = kms.get_crypto_key(key)
    except KmsError as e:
        results.append(CheckResult("crypto key", False, str(e)))
    else:
        purpose = f" ({info.purpose})" if info.purpose else ""
        results.append(CheckResult("crypto key", True, f"{info.name}{purpose}"))

    if destination is None:
        results.append(CheckResult("bucket", False, "no destination bucket set"))
    else:
        try:
            bucket = storage.get_bucket(destination.bucket)
        except StorageError as e:
            results.append(CheckResult("bucket", False, str(e)))
        else:
            where = f" in {bucket.location}" if bucket.location else ""
            results.append(CheckResult("bucket", True, f"gs://{bucket.name}{where}"))

    for result in results:
        if not result.ok:
            logger.warning("Check failed: %s: %s", result.name, result.detail)
    return results
