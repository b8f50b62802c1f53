import os

from core import executable_locator
from core.executable_locator import candidate_paths, is_executable, locate_executable


def _make_binary(path, mode=0o755):
    path.write_text("#!/bin/sh\n")
    os.chmod(path, mode)
    return str(path)


def test_linux_resolves_first_installed_on_path(tmp_path, monkeypatch):
    chromium = _make_binary(tmp_path / "chromium")
    monkeypatch.setattr(
        executable_locator.shutil, "which",
        lambda name: chromium if name == "chromium" else None,
    )
    assert locate_executable("linux") == chromium


def test_not_found_is_none(monkeypatch):
    monkeypatch.setattr(executable_locator.shutil, "which", lambda name: None)
    assert locate_executable("linux") is None


def test_lookup_order_prefers_chrome(tmp_path, monkeypatch):
    chrome = _make_binary(tmp_path / "google-chrome")
    edge = _make_binary(tmp_path / "microsoft-edge")
    found = {"google-chrome": chrome, "microsoft-edge": edge}
    monkeypatch.setattr(executable_locator.shutil, "which", found.get)
    assert locate_executable("linux") == chrome


def test_non_executable_file_is_skipped(tmp_path, monkeypatch):
    plain = _make_binary(tmp_path / "google-chrome", mode=0o644)
    monkeypatch.setattr(
        executable_locator.shutil, "which",
        lambda name: plain if name == "google-chrome" else None,
    )
    assert is_executable(plain) is False
    assert locate_executable("linux") is None


def test_windows_candidates_use_install_roots(monkeypatch):
    monkeypatch.setenv("LOCALAPPDATA", "C:/Users/me/AppData/Local")
    monkeypatch.delenv("PROGRAMFILES", raising=False)
    monkeypatch.delenv("PROGRAMFILES(X86)", raising=False)

    paths = candidate_paths("win32")
    assert paths
    assert all(p.startswith("C:/Users/me/AppData/Local") for p in paths)
    assert any(p.endswith("chrome.exe") for p in paths)
    assert any(p.endswith("msedge.exe") for p in paths)


def test_darwin_candidates_are_app_bundles():
    paths = candidate_paths("darwin")
    assert paths[0] == "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome"
