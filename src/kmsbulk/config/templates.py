"""Config file template and the `kmsbulk init` workflow."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from kmsbulk.config.models import DEFAULT_SUFFIX

logger = logging.getLogger(__name__)


@dataclass
class InitResult:
    """Result of run_init()."""

    success: bool
    config_path: Path
    dry_run: bool = False
    content: str = ""
    created_files: list[Path] = field(default_factory=list)
    replaced_files: list[Path] = field(default_factory=list)
    error: str | None = None


_TOML_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\b": "\\b",
    "\t": "\\t",
    "\n": "\\n",
    "\f": "\\f",
    "\r": "\\r",
}


def _toml_string(value: str) -> str:
    """Quote value as a TOML basic string."""
    chars = []
    for char in value:
        if char in _TOML_ESCAPES:
            chars.append(_TOML_ESCAPES[char])
        elif ord(char) < 0x20 or ord(char) == 0x7F:
            chars.append(f"\\u{ord(char):04x}")
        else:
            chars.append(char)
    return '"' + "".join(chars) + '"'


def _setting(name: str, value: str | None, example: str) -> str:
    if value is None:
        return f'# {name} = "{example}"'
    return f"{name} = {_toml_string(value)}"


def render_config(
    *,
    project: str | None = None,
    location: str | None = None,
    keyring: str | None = None,
    key: str | None = None,
    bucket: str | None = None,
    prefix: str | None = None,
) -> str:
    """Render a commented config.toml.

    Settings left as None are written commented out with an example value.
    """
    lines = [
        "# kmsbulk configuration",
        "#",
        "# Precedence: command line options > KMSBULK_* environment variables",
        "# > this file > defaults.",
        "",
        "[key]",
        "# Cloud KMS crypto key used to encrypt files",
        _setting("project", project, "my-project"),
        _setting("location", location, "global"),
        _setting("keyring", keyring, "test"),
        _setting("key", key, "qwiklab"),
        "",
        "[storage]",
        "# Destination bucket for ciphertext artifacts",
        _setting("bucket", bucket, "my-project-enron_corpus"),
        "# Object name prefix (default: name of the encrypted directory)",
        _setting("prefix", prefix, "allen-p"),
        "",
        "[encryption]",
        f'# suffix = "{DEFAULT_SUFFIX}"',
        "# cleanup_after_upload = false",
        "",
        "[processing]",
        "# workers = 1",
        "",
        "[retry]",
        "# max_attempts = 3",
        "# base_delay = 0.5",
        "# max_delay = 8.0",
        "",
        "[http]",
        "# timeout_seconds = 30",
        "",
        "[auth]",
        "# Tokens come from `gcloud auth application-default print-access-token`",
        '# gcloud_path = "gcloud"',
        "# token_refresh_seconds = 1800",
        "",
        "[logging]",
        '# level = "info"',
        '# file = "~/.kmsbulk/logs/kmsbulk.log"',
        '# format = "text"',
        "",
    ]
    return "\n".join(lines)


def run_init(
    config_path: Path,
    content: str,
    *,
    force: bool = False,
    dry_run: bool = False,
) -> InitResult:
    """Write content to config_path.

    Args:
        config_path: Where to write the config file.
        content: Rendered config file.
        force: Replace an existing file.
        dry_run: Report what would be written without writing.

    Returns:
        InitResult; success is False when the file exists and force is not
        set, or when writing fails.
    """
    exists = config_path.exists()
    if exists and not force:
        return InitResult(
            success=False,
            config_path=config_path,
            dry_run=dry_run,
            content=content,
            error=f"Configuration already exists at {config_path}",
        )

    result = InitResult(
        success=True, config_path=config_path, dry_run=dry_run, content=content
    )
    if exists:
        result.replaced_files.append(config_path)
    else:
        result.created_files.append(config_path)
    if dry_run:
        return result

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(content, encoding="utf-8")
    except OSError as e:
        logger.debug("Writing %s failed: %s", config_path, e)
        return InitResult(
            success=False,
            config_path=config_path,
            content=content,
            error=f"Cannot write {config_path}: {e}",
        )
    logger.info("Wrote configuration to %s", config_path)
    return result
