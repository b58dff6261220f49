"""Single-file encrypt, verify and decrypt."""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from pathlib import Path

from kmsbulk.config.models import DEFAULT_SUFFIX
from kmsbulk.encryptor.discovery import artifact_path_for, source_path_for
from kmsbulk.encryptor.pipeline import (
    ARTIFACT_CONTENT_TYPE,
    encode_file,
    write_artifact,
)
from kmsbulk.exceptions import (
    EncodingError,
    EncryptCallError,
    FileProcessingError,
    UploadError,
    VerificationError,
)
from kmsbulk.kms.client import KmsClient, KmsError, is_retryable_kms_error
from kmsbulk.kms.models import CryptoKeyName
from kmsbulk.retry import RetryPolicy, call_with_retry
from kmsbulk.storage.client import (
    GcsClient,
    StorageError,
    is_retryable_storage_error,
)
from kmsbulk.storage.destination import Destination

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SingleFileResult:
    """Outcome of encrypt_single_file()."""

    path: Path
    artifact_path: Path
    size: int
    verified: bool = False
    object_name: str | None = None
    uri: str | None = None


def encrypt_single_file(
    path: Path,
    kms: KmsClient,
    key: CryptoKeyName,
    *,
    suffix: str = DEFAULT_SUFFIX,
    storage: GcsClient | None = None,
    destination: Destination | None = None,
    verify: bool = True,
    retry: RetryPolicy | None = None,
) -> SingleFileResult:
    """Encrypt one file, optionally verify the round trip and upload it.

    The artifact is uploaded as "<prefix>/<artifact name>"; without a
    configured prefix it lands at the bucket root.

    Args:
        path: File to encrypt.
        kms: Client for the encrypt and decrypt calls.
        key: Crypto key to use.
        suffix: Artifact suffix.
        storage: Client for the upload (no upload when None).
        destination: Upload destination (no upload when None).
        verify: Decrypt the artifact and compare with the original bytes.
        retry: Retry policy for the API calls.

    Returns:
        SingleFileResult describing the artifact.

    Raises:
        EncodingError: If the file is missing, empty or unreadable.
        EncryptCallError: If encryption or verification decryption fails.
        VerificationError: If the decrypted bytes differ from the original.
        UploadError: If the artifact cannot be read back or uploaded.
        FileProcessingError: If the artifact cannot be written.
    """
    policy = retry or RetryPolicy()
    if not path.is_file():
        raise EncodingError(path, "file does not exist")
    data, encoded = encode_file(path)
    if not data:
        raise EncodingError(path, "file is empty")

    try:
        ciphertext = call_with_retry(
            lambda: kms.encrypt(key, encoded),
            policy,
            is_retryable=is_retryable_kms_error,
            description=f"encrypt {path}",
        )
    except KmsError as e:
        raise EncryptCallError(path, str(e)) from e

    artifact = artifact_path_for(path, suffix)
    write_artifact(artifact, ciphertext)
    logger.info("Encrypted %s -> %s", path, artifact)

    verified = False
    if verify:
        recovered = _decrypt_artifact(artifact, kms, key, policy)
        if recovered != data:
            raise VerificationError(
                artifact, "decrypted content does not match the original file"
            )
        verified = True
        logger.info("Verified %s decrypts to the original content", artifact)

    object_name = None
    uri = None
    if storage is not None and destination is not None:
        object_name = "/".join(filter(None, [destination.prefix, artifact.name]))
        target = destination
        try:
            artifact_bytes = artifact.read_bytes()
        except OSError as e:
            raise UploadError(
                artifact, f"cannot read artifact: {e.strerror or e}"
            ) from e
        try:
            call_with_retry(
                lambda: storage.upload(
                    target.bucket, object_name, artifact_bytes, ARTIFACT_CONTENT_TYPE
                ),
                policy,
                is_retryable=is_retryable_storage_error,
                description=f"upload {artifact}",
            )
        except StorageError as e:
            raise UploadError(artifact, str(e)) from e
        uri = destination.uri_for(object_name)
        logger.info("Uploaded %s", uri)

    return SingleFileResult(
        path=path,
        artifact_path=artifact,
        size=len(data),
        verified=verified,
        object_name=object_name,
        uri=uri,
    )


def _decrypt_artifact(
    artifact: Path, kms: KmsClient, key: CryptoKeyName, policy: RetryPolicy
) -> bytes:
    try:
        ciphertext = artifact.read_text(encoding="ascii").strip()
    except (OSError, UnicodeDecodeError) as e:
        raise EncodingError(artifact, f"cannot read artifact: {e}") from e
    if not ciphertext:
        raise EncodingError(artifact, "artifact is empty")

    try:
        plaintext = call_with_retry(
            lambda: kms.decrypt(key, ciphertext),
            policy,
            is_retryable=is_retryable_kms_error,
            description=f"decrypt {artifact}",
        )
    except KmsError as e:
        raise EncryptCallError(artifact, str(e), phase="decrypt") from e

    try:
        return base64.b64decode(plaintext, validate=True)
    except (binascii.Error, ValueError) as e:
        raise EncryptCallError(
            artifact, "decrypted payload is not valid base64", phase="decrypt"
        ) from e


def decrypt_file(
    artifact: Path,
    kms: KmsClient,
    key: CryptoKeyName,
    *,
    output: Path | None = None,
    suffix: str = DEFAULT_SUFFIX,
    overwrite: bool = False,
    retry: RetryPolicy | None = None,
) -> Path:
    """Decrypt a ciphertext artifact back into a plaintext file.

    Args:
        artifact: File written by an encrypt run.
        kms: Client for the decrypt call.
        key: Crypto key the artifact was encrypted with.
        output: Where to write the plaintext. Defaults to the artifact path
            without its suffix.
        suffix: Artifact suffix.
        overwrite: Replace an existing output file.
        retry: Retry policy for the decrypt call.

    Returns:
        Path of the written plaintext file.

    Raises:
        ValueError: If output is not given and artifact lacks the suffix.
        FileExistsError: If output exists and overwrite is False.
        EncodingError: If the artifact cannot be read.
        EncryptCallError: If the decrypt call fails.
        FileProcessingError: With phase "write" if the plaintext cannot be
            written.
    """
    if output is None:
        output = source_path_for(artifact, suffix)
    if output.exists() and not overwrite:
        raise FileExistsError(f"Refusing to overwrite {output}")

    data = _decrypt_artifact(artifact, kms, key, retry or RetryPolicy())
    try:
        output.write_bytes(data)
    except OSError as e:
        raise FileProcessingError(
            output, f"cannot write plaintext: {e.strerror or e}", phase="write"
        ) from e
    logger.info("Decrypted %s -> %s (%d bytes)", artifact, output, len(data))
    return output
