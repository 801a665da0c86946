"""
Credential Resolver
===================

Finds the Claude Code OAuth access token on the local machine.

Each supported platform has its own strategy: the OS secret store is asked
first, then ``~/.claude/.credentials.json``, then a list of fallback
credential files. The first value that looks like an OAuth token wins.
Nothing in here raises; every failed lookup is logged at DEBUG level and
treated as "not found".
"""
from __future__ import annotations

import json
import logging
import os
import re
import subprocess
import sys
from pathlib import Path
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

TOKEN_PREFIX = 'sk-ant-oat'
SHELL_TIMEOUT = 5  # Seconds per secret store invocation

KEYCHAIN_SERVICE = 'Claude Code-credentials'
SECRET_TOOL_SERVICE = 'Claude Code-credentials'
WINDOWS_CREDENTIAL_TARGET = 'Claude Code'

NESTED_KEY = 'claudeAiOauth'
FLAT_KEYS = ('oauth_token', 'token', 'accessToken')

_KEYCHAIN_SERVICE_RE = re.compile(r'"svce"<blob>="(?P<name>[^"]*)"')

Resolver = Callable[[Path], Optional[str]]


def is_token(value: Any) -> bool:
    """Return True if *value* is a string carrying the OAuth token prefix."""
    return isinstance(value, str) and value.startswith(TOKEN_PREFIX)


def token_from_payload(payload: Any) -> str | None:
    """Extract a token from a decoded credential document.

    Accepts the nested Claude Code shape ``{"claudeAiOauth": {"accessToken": ...}}``
    as well as a flat document with one of ``oauth_token``, ``token`` or
    ``accessToken``.
    """
    if not isinstance(payload, dict):
        return None

    nested = payload.get(NESTED_KEY)
    if isinstance(nested, dict) and is_token(nested.get('accessToken')):
        return nested['accessToken']

    for key in FLAT_KEYS:
        if is_token(payload.get(key)):
            return payload[key]

    return None


def token_from_secret(secret: str) -> str | None:
    """Interpret a secret store value, which may be a bare token or JSON."""
    secret = secret.strip()
    if is_token(secret):
        return secret
    if secret.startswith('{'):
        try:
            return token_from_payload(json.loads(secret))
        except json.JSONDecodeError as e:
            logger.debug('Secret store value is not valid JSON: %s', e)

    return None


def read_credential_file(path: Path) -> str | None:
    """Return the token stored in the JSON file at *path*, or None."""
    try:
        if not path.is_file():
            return None
        token = token_from_payload(json.loads(path.read_text(encoding='utf-8')))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.debug('Failed to read credentials from %s: %s', path, e)
        return None

    if token:
        logger.debug('Found OAuth token in %s', path)
    return token


def _run(args: list[str]) -> str | None:
    """Run a secret store helper and return its stdout, or None on any failure."""
    try:
        # Keychain dumps can carry binary attribute blobs
        result = subprocess.run(args, capture_output=True, text=True, errors='replace', timeout=SHELL_TIMEOUT)
    except (OSError, subprocess.SubprocessError, UnicodeDecodeError) as e:
        logger.debug('%s failed: %s', args[0], e)
        return None

    if result.returncode != 0:
        logger.debug('%s exited with status %d', args[0], result.returncode)
        return None

    return result.stdout


def primary_credential_file(home: Path) -> Path:
    return home / '.claude' / '.credentials.json'


def fallback_credential_files(home: Path, windows: bool = False) -> list[Path]:
    """Return the alternate credential locations for the current user.

    Parameters
    ----------
    home : Path
        User home directory.
    windows : bool
        Include ``%APPDATA%`` and ``%LOCALAPPDATA%`` locations.

    Returns
    -------
    list of Path
        Candidate files in lookup order.
    """
    xdg = os.environ.get('XDG_CONFIG_HOME')
    config_dir = Path(xdg) if xdg else home / '.config'
    paths = [
        home / '.claude' / 'credentials.json',
        config_dir / 'claude-code' / 'credentials.json',
    ]
    if windows:
        for var in ('APPDATA', 'LOCALAPPDATA'):
            base = os.environ.get(var)
            if base:
                paths.append(Path(base) / 'Claude Code' / 'credentials.json')

    return paths


def _token_from_files(home: Path, windows: bool = False) -> str | None:
    for path in [primary_credential_file(home), *fallback_credential_files(home, windows)]:
        token = read_credential_file(path)
        if token:
            return token

    return None


# ── Secret stores ─────────────────────────────────────────────


def windows_credential_manager() -> str | None:
    """Read the token from the Windows Credential Manager via PowerShell."""
    script = (
        "[System.Text.Encoding]::UTF8.GetString([System.Convert]::FromBase64String("
        f"(Get-StoredCredential -Target '{WINDOWS_CREDENTIAL_TARGET}' -AsCredentialObject).Password))"
    )
    out = _run(['powershell', '-NoProfile', '-Command', script])
    return token_from_secret(out) if out else None


def keychain_service_names(dump: str) -> list[str]:
    """Return keychain service names belonging to Claude Code, longest first."""
    names = {
        m.group('name')
        for m in _KEYCHAIN_SERVICE_RE.finditer(dump)
        if m.group('name').startswith(KEYCHAIN_SERVICE)
    }
    return sorted(names, key=lambda name: (-len(name), name))


def macos_keychain() -> str | None:
    """Read the token from the macOS login keychain.

    Newer Claude Code builds append a random suffix to the service name, so
    the keychain dump is searched for the most specific entry first. The
    legacy unsuffixed name is only tried when that lookup fails.
    """
    dump = _run(['security', 'dump-keychain'])
    candidates = keychain_service_names(dump) if dump else []
    if KEYCHAIN_SERVICE not in candidates:
        candidates.append(KEYCHAIN_SERVICE)

    for service in candidates:
        out = _run(['security', 'find-generic-password', '-s', service, '-w'])
        token = token_from_secret(out) if out else None
        if token:
            logger.debug('Found OAuth token in keychain entry %r', service)
            return token

    return None


def linux_secret_service() -> str | None:
    """Read the token from the Secret Service (GNOME Keyring, KWallet) via secret-tool."""
    out = _run(['secret-tool', 'lookup', 'service', SECRET_TOOL_SERVICE])
    return token_from_secret(out) if out else None


# ── Platform strategies ───────────────────────────────────────


def resolve_windows(home: Path) -> str | None:
    return windows_credential_manager() or _token_from_files(home, windows=True)


def resolve_macos(home: Path) -> str | None:
    return macos_keychain() or _token_from_files(home)


def resolve_linux(home: Path) -> str | None:
    return linux_secret_service() or _token_from_files(home)


RESOLVERS: dict[str, Resolver] = {
    'win32': resolve_windows,
    'darwin': resolve_macos,
    'linux': resolve_linux,
}


def select_resolver(platform: str | None = None) -> Resolver | None:
    """Return the resolver strategy for *platform* (default: this host), or None."""
    platform = platform or sys.platform
    if platform.startswith('linux'):
        platform = 'linux'

    return RESOLVERS.get(platform)


def resolve_token(platform: str | None = None, home: Path | None = None) -> str | None:
    """Locate the OAuth access token for the current user.

    Parameters
    ----------
    platform : str, optional
        ``sys.platform`` style identifier, defaults to the running host.
    home : Path, optional
        Home directory to search, defaults to ``Path.home()``.

    Returns
    -------
    str or None
        The token, or None if no credential could be found. Unsupported
        platforms return None without touching any secret store or file.
    """
    resolver = select_resolver(platform)
    if resolver is None:
        logger.debug('Unsupported platform for OAuth token retrieval: %s', platform or sys.platform)
        return None

    logger.debug('Resolving OAuth token on platform: %s', platform or sys.platform)
    try:
        return resolver(home or Path.home())
    except RuntimeError as e:
        # Path.home() raises when no home directory can be determined
        logger.debug('Token resolution failed: %s', e)
        return None
