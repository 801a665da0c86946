"""Credential resolver tests."""

from __future__ import annotations

import json
import subprocess
from pathlib import Path
from typing import Any

import pytest

from claude_limitline import credentials
from claude_limitline.credentials import (
    keychain_service_names,
    read_credential_file,
    resolve_token,
    select_resolver,
    token_from_payload,
    token_from_secret,
)

TOKEN = 'sk-ant-oat01-abcdef'
OTHER_TOKEN = 'sk-ant-oat01-fallback'


class FakeRun:
    """Stand-in for subprocess.run answering by command line."""

    def __init__(self, responses: dict[tuple[str, ...], Any] | None = None) -> None:
        self.responses = responses or {}
        self.calls: list[list[str]] = []

    def __call__(self, args: list[str], **kwargs: Any) -> subprocess.CompletedProcess:
        self.calls.append(list(args))
        assert kwargs.get('timeout') == credentials.SHELL_TIMEOUT
        response = self.responses.get(tuple(args))
        if isinstance(response, BaseException):
            raise response
        if response is None:
            return subprocess.CompletedProcess(args, 1, '', 'not found')
        return subprocess.CompletedProcess(args, 0, response, '')


@pytest.fixture
def fake_run(monkeypatch: pytest.MonkeyPatch) -> FakeRun:
    run = FakeRun()
    monkeypatch.setattr(credentials.subprocess, 'run', run)
    return run


def write_json(path: Path, data: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding='utf-8')
    return path


# ── Parsing ───────────────────────────────────────────────────


def test_payload_nested_shape() -> None:
    assert token_from_payload({'claudeAiOauth': {'accessToken': TOKEN}}) == TOKEN


@pytest.mark.parametrize('key', ['oauth_token', 'token', 'accessToken'])
def test_payload_flat_keys(key: str) -> None:
    assert token_from_payload({key: TOKEN}) == TOKEN


def test_payload_nested_wins_over_flat() -> None:
    data = {'token': OTHER_TOKEN, 'claudeAiOauth': {'accessToken': TOKEN}}
    assert token_from_payload(data) == TOKEN


@pytest.mark.parametrize(
    'payload',
    [
        {},
        {'token': ''},
        {'token': 'sk-ant-api03-not-oauth'},
        {'accessToken': 12345},
        {'claudeAiOauth': 'sk-ant-oat01-wrong-shape'},
        ['sk-ant-oat01-in-a-list'],
        None,
    ],
)
def test_payload_rejects_non_tokens(payload: Any) -> None:
    assert token_from_payload(payload) is None


def test_secret_bare_token_is_trimmed() -> None:
    assert token_from_secret(f'  {TOKEN}\n') == TOKEN


def test_secret_json_document() -> None:
    assert token_from_secret(json.dumps({'claudeAiOauth': {'accessToken': TOKEN}})) == TOKEN


def test_secret_malformed_json() -> None:
    assert token_from_secret('{"claudeAiOauth": ') is None


def test_read_credential_file_missing(tmp_path: Path) -> None:
    assert read_credential_file(tmp_path / 'nope.json') is None


def test_read_credential_file_malformed(tmp_path: Path) -> None:
    path = tmp_path / 'creds.json'
    path.write_text('{not json', encoding='utf-8')
    assert read_credential_file(path) is None


def test_keychain_service_names_longest_first() -> None:
    dump = '\n'.join([
        'keychain: "/Users/me/Library/Keychains/login.keychain-db"',
        '    "svce"<blob>="Claude Code-credentials"',
        '    "svce"<blob>="Claude Code-credentials-1a2b3c4d"',
        '    "svce"<blob>="Some Other App"',
        '    "svce"<blob>="Claude Code-credentials-1a2b3c4d"',
    ])
    assert keychain_service_names(dump) == ['Claude Code-credentials-1a2b3c4d', 'Claude Code-credentials']


# ── Platform dispatch ─────────────────────────────────────────


@pytest.mark.parametrize(
    ('platform', 'expected'),
    [
        ('win32', credentials.resolve_windows),
        ('darwin', credentials.resolve_macos),
        ('linux', credentials.resolve_linux),
        ('linux2', credentials.resolve_linux),
    ],
)
def test_select_resolver(platform: str, expected: Any) -> None:
    assert select_resolver(platform) is expected


def test_unknown_platform_does_no_io(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    write_json(tmp_path / '.claude' / '.credentials.json', {'claudeAiOauth': {'accessToken': TOKEN}})

    def forbidden(*args: Any, **kwargs: Any) -> Any:
        raise AssertionError('no I/O expected')

    monkeypatch.setattr(credentials.subprocess, 'run', forbidden)
    monkeypatch.setattr(credentials, 'read_credential_file', forbidden)
    monkeypatch.setattr(credentials.Path, 'home', forbidden)

    assert select_resolver('freebsd13') is None
    assert resolve_token('freebsd13', home=tmp_path) is None


# ── Linux ─────────────────────────────────────────────────────


def test_linux_secret_tool_first(fake_run: FakeRun, tmp_path: Path) -> None:
    fake_run.responses[('secret-tool', 'lookup', 'service', 'Claude Code-credentials')] = TOKEN + '\n'
    write_json(tmp_path / '.claude' / '.credentials.json', {'claudeAiOauth': {'accessToken': OTHER_TOKEN}})

    assert resolve_token('linux', home=tmp_path) == TOKEN


def test_linux_missing_secret_tool_falls_back_to_file(fake_run: FakeRun, tmp_path: Path) -> None:
    fake_run.responses[('secret-tool', 'lookup', 'service', 'Claude Code-credentials')] = FileNotFoundError('secret-tool')
    write_json(tmp_path / '.claude' / '.credentials.json', {'claudeAiOauth': {'accessToken': TOKEN}})

    assert resolve_token('linux', home=tmp_path) == TOKEN


def test_linux_timeout_falls_back_to_file(fake_run: FakeRun, tmp_path: Path) -> None:
    fake_run.responses[('secret-tool', 'lookup', 'service', 'Claude Code-credentials')] = subprocess.TimeoutExpired('secret-tool', 5)
    write_json(tmp_path / '.claude' / '.credentials.json', {'token': TOKEN})

    assert resolve_token('linux', home=tmp_path) == TOKEN


def test_linux_undecodable_output_falls_back_to_file(fake_run: FakeRun, tmp_path: Path) -> None:
    fake_run.responses[('secret-tool', 'lookup', 'service', 'Claude Code-credentials')] = UnicodeDecodeError(
        'utf-8', b'\xff', 0, 1, 'invalid start byte'
    )
    write_json(tmp_path / '.claude' / '.credentials.json', {'token': TOKEN})

    assert resolve_token('linux', home=tmp_path) == TOKEN


def test_helper_output_decoded_leniently(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: dict[str, Any] = {}

    def run(args: list[str], **kwargs: Any) -> subprocess.CompletedProcess:
        seen.update(kwargs)
        return subprocess.CompletedProcess(args, 0, 'ok', '')

    monkeypatch.setattr(credentials.subprocess, 'run', run)

    assert credentials._run(['security', 'dump-keychain']) == 'ok'
    assert seen['errors'] == 'replace'
    assert seen['text'] is True


def test_macos_undecodable_dump_still_tries_legacy(fake_run: FakeRun, tmp_path: Path) -> None:
    fake_run.responses[('security', 'dump-keychain')] = UnicodeDecodeError('utf-8', b'\x80', 0, 1, 'invalid start byte')
    fake_run.responses[('security', 'find-generic-password', '-s', 'Claude Code-credentials', '-w')] = TOKEN

    assert resolve_token('darwin', home=tmp_path) == TOKEN


def test_linux_fallback_order(fake_run: FakeRun, tmp_path: Path) -> None:
    (tmp_path / '.claude').mkdir()
    (tmp_path / '.claude' / '.credentials.json').write_text('{broken', encoding='utf-8')
    write_json(tmp_path / '.claude' / 'credentials.json', {'oauth_token': 'not-a-token'})
    write_json(tmp_path / '.config' / 'claude-code' / 'credentials.json', {'accessToken': OTHER_TOKEN})

    assert resolve_token('linux', home=tmp_path) == OTHER_TOKEN


def test_linux_honours_xdg_config_home(fake_run: FakeRun, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    xdg = tmp_path / 'xdg'
    monkeypatch.setenv('XDG_CONFIG_HOME', str(xdg))
    write_json(xdg / 'claude-code' / 'credentials.json', {'token': TOKEN})

    assert resolve_token('linux', home=tmp_path / 'home') == TOKEN


def test_linux_nothing_found(fake_run: FakeRun, tmp_path: Path) -> None:
    assert resolve_token('linux', home=tmp_path) is None


# ── macOS ─────────────────────────────────────────────────────


def test_macos_prefers_suffixed_keychain_entry(fake_run: FakeRun, tmp_path: Path) -> None:
    fake_run.responses[('security', 'dump-keychain')] = (
        '    "svce"<blob>="Claude Code-credentials"\n'
        '    "svce"<blob>="Claude Code-credentials-9f8e7d"\n'
    )
    fake_run.responses[('security', 'find-generic-password', '-s', 'Claude Code-credentials-9f8e7d', '-w')] = json.dumps(
        {'claudeAiOauth': {'accessToken': TOKEN}}
    )
    fake_run.responses[('security', 'find-generic-password', '-s', 'Claude Code-credentials', '-w')] = OTHER_TOKEN

    assert resolve_token('darwin', home=tmp_path) == TOKEN
    assert ['security', 'find-generic-password', '-s', 'Claude Code-credentials', '-w'] not in fake_run.calls


def test_macos_falls_back_to_legacy_name(fake_run: FakeRun, tmp_path: Path) -> None:
    fake_run.responses[('security', 'dump-keychain')] = '    "svce"<blob>="Claude Code-credentials-9f8e7d"\n'
    fake_run.responses[('security', 'find-generic-password', '-s', 'Claude Code-credentials', '-w')] = TOKEN

    assert resolve_token('darwin', home=tmp_path) == TOKEN
    lookups = [call[3] for call in fake_run.calls if call[1] == 'find-generic-password']
    assert lookups == ['Claude Code-credentials-9f8e7d', 'Claude Code-credentials']


def test_macos_dump_failure_still_tries_legacy(fake_run: FakeRun, tmp_path: Path) -> None:
    fake_run.responses[('security', 'dump-keychain')] = OSError('security missing')
    fake_run.responses[('security', 'find-generic-password', '-s', 'Claude Code-credentials', '-w')] = TOKEN

    assert resolve_token('darwin', home=tmp_path) == TOKEN


def test_macos_falls_back_to_files(fake_run: FakeRun, tmp_path: Path) -> None:
    write_json(tmp_path / '.claude' / '.credentials.json', {'claudeAiOauth': {'accessToken': TOKEN}})
    assert resolve_token('darwin', home=tmp_path) == TOKEN


# ── Windows ───────────────────────────────────────────────────


def test_windows_credential_manager(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def run(args: list[str], **kwargs: Any) -> subprocess.CompletedProcess:
        assert args[0] == 'powershell'
        assert "Get-StoredCredential -Target 'Claude Code'" in args[-1]
        return subprocess.CompletedProcess(args, 0, TOKEN + '\r\n', '')

    monkeypatch.setattr(credentials.subprocess, 'run', run)
    assert resolve_token('win32', home=tmp_path) == TOKEN


def test_windows_appdata_fallbacks(fake_run: FakeRun, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv('APPDATA', str(tmp_path / 'Roaming'))
    monkeypatch.setenv('LOCALAPPDATA', str(tmp_path / 'Local'))
    write_json(tmp_path / 'Local' / 'Claude Code' / 'credentials.json', {'oauth_token': TOKEN})

    assert resolve_token('win32', home=tmp_path / 'home') == TOKEN


def test_windows_fallback_paths_order(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv('APPDATA', str(tmp_path / 'Roaming'))
    monkeypatch.setenv('LOCALAPPDATA', str(tmp_path / 'Local'))

    paths = credentials.fallback_credential_files(tmp_path, windows=True)
    assert paths == [
        tmp_path / '.claude' / 'credentials.json',
        tmp_path / '.config' / 'claude-code' / 'credentials.json',
        tmp_path / 'Roaming' / 'Claude Code' / 'credentials.json',
        tmp_path / 'Local' / 'Claude Code' / 'credentials.json',
    ]
