"""Destination bucket and object naming for ciphertext artifacts."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

# Bucket names: 3-63 chars (up to 222 with dots), lowercase letters, digits,
# dashes, underscores and dots, starting and ending with a letter or digit
_BUCKET_PATTERN = re.compile(r"^[a-z0-9][a-z0-9._-]{1,220}[a-z0-9]$")


def _clean_prefix(prefix: str | None) -> str | None:
    if prefix is None:
        return None
    segments = [s for s in prefix.split("/") if s]
    return "/".join(segments) or None


@dataclass(frozen=True)
class Destination:
    """Cloud Storage bucket plus an optional object name prefix.

    Attributes:
        bucket: Bucket name, without the gs:// scheme.
        prefix: Object name prefix without leading or trailing slashes.
            None means the scanned root directory's name is used.
    """

    bucket: str
    prefix: str | None = None

    def __post_init__(self) -> None:
        if not _BUCKET_PATTERN.match(self.bucket):
            raise ValueError(f"Invalid bucket name: {self.bucket!r}")
        object.__setattr__(self, "prefix", _clean_prefix(self.prefix))

    @classmethod
    def parse(cls, value: str, prefix: str | None = None) -> Destination:
        """Parse "gs://bucket/some/prefix", "gs://bucket" or a bare bucket name.

        Args:
            value: Destination string.
            prefix: Object name prefix. When given it replaces any prefix
                carried by value.

        Raises:
            ValueError: If the bucket name is missing or invalid.
        """
        text = value.strip()
        if text.startswith("gs://"):
            text = text[len("gs://") :]
        bucket, _, path_prefix = text.partition("/")
        if not bucket:
            raise ValueError(f"No bucket in destination {value!r}")
        return cls(
            bucket=bucket, prefix=_clean_prefix(prefix) or _clean_prefix(path_prefix)
        )

    def prefix_for(self, root: Path) -> str:
        """The effective prefix for artifacts found under root."""
        if self.prefix:
            return self.prefix
        return _clean_prefix(root.resolve().name) or ""

    def object_name_for(self, root: Path, artifact: Path) -> str:
        """Object name of an artifact found under root.

        root/a/b.txt.encrypted becomes "<prefix>/a/b.txt.encrypted".

        Raises:
            ValueError: If artifact is not inside root.
        """
        relative = artifact.resolve().relative_to(root.resolve()).as_posix()
        prefix = self.prefix_for(root)
        return f"{prefix}/{relative}" if prefix else relative

    def uri_for(self, object_name: str = "") -> str:
        """gs:// URI of an object (or of the bucket when object_name is empty)."""
        if object_name:
            return f"gs://{self.bucket}/{object_name}"
        return f"gs://{self.bucket}"

    def __str__(self) -> str:
        return self.uri_for(self.prefix or "")
