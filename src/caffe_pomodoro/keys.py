from __future__ import annotations

"""Gemini API key storage & retrieval.

Strategy:
 - Try the OS keyring via the 'keyring' package.
 - Fallback to a simple XOR-obfuscated file (NOT strong encryption, but avoids plain text)
   when no keyring backend is usable.
 - Environment variable ``GEMINI_API_KEY`` as a last resort.
 - Redaction helper for logs.
"""

import base64
import logging
import os
from pathlib import Path
from typing import Optional

import keyring
from keyring.errors import KeyringError

SERVICE_NAME = "caffe_pomodoro_gemini"
FALLBACK_FILENAME = "gemini.key"
ENV_VAR = "GEMINI_API_KEY"
_XOR_KEY = b"caffe-pomodoro-xor"
_log = logging.getLogger(__name__)


def save_api_key(base_dir: Path, api_key: str) -> None:
    try:
        keyring.set_password(SERVICE_NAME, "default", api_key)
        _log.info("api key stored in keyring")
        return
    except KeyringError:
        _log.warning("keyring storage failed; falling back to file")
    path = base_dir / FALLBACK_FILENAME
    path.write_bytes(_xor_obfuscate(api_key.encode("utf-8")))
    _log.info("api key stored in fallback file", extra={"_json_location": "fallback"})


def load_api_key(base_dir: Path) -> Optional[str]:
    try:
        v = keyring.get_password(SERVICE_NAME, "default")
        if v:
            return v
    except KeyringError:
        _log.debug("keyring unavailable")
    path = base_dir / FALLBACK_FILENAME
    if path.exists():
        try:
            return _xor_deobfuscate(path.read_bytes()).decode("utf-8")
        except (ValueError, UnicodeDecodeError):
            _log.warning("fallback key file unreadable")
    return os.environ.get(ENV_VAR) or None


def redact(value: str | None) -> str:
    if not value:
        return "<none>"
    if len(value) <= 6:
        return "***"
    return value[:3] + "***" + value[-3:]


def _xor_obfuscate(data: bytes) -> bytes:
    return base64.b64encode(bytes([b ^ _XOR_KEY[i % len(_XOR_KEY)] for i, b in enumerate(data)]))


def _xor_deobfuscate(data: bytes) -> bytes:
    raw = base64.b64decode(data)
    return bytes([b ^ _XOR_KEY[i % len(_XOR_KEY)] for i, b in enumerate(raw)])


__all__ = ["save_api_key", "load_api_key", "redact"]
