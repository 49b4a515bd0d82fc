from __future__ import annotations

import json
from pathlib import Path

import pytest

from routing_engine.catalog.profiles import (
    ChromiumLocalStateSource,
    FirefoxProfilesIniSource,
    chromium_family_ids,
    default_profile_sources,
    firefox_family_ids,
    parse_chromium_local_state,
    parse_firefox_profiles_ini,
)

CHROME = "com.google.Chrome"
FIREFOX = "org.mozilla.firefox"


def _local_state(info_cache: dict) -> bytes:
    return json.dumps({"profile": {"info_cache": info_cache}}).encode("utf-8")


def test_chromium_profiles_default_first_then_by_name() -> None:
    data = _local_state(
        {
            "Profile 2": {"name": "work"},
            "Profile 1": {"name": "Personal"},
            "Default": {"name": "Zed"},
        }
    )

    profiles = parse_chromium_local_state(data, CHROME)

    assert [p.directory_name for p in profiles] == ["Default", "Profile 1", "Profile 2"]
    assert [p.name for p in profiles] == ["Zed", "Personal", "work"]
    assert profiles[1].id == "com.google.Chrome/Profile 1"


def test_chromium_profile_without_name_uses_directory() -> None:
    profiles = parse_chromium_local_state(_local_state({"Profile 3": {}}), CHROME)
    assert profiles[0].name == "Profile 3"


@pytest.mark.parametrize(
    "document",
    [
        {},
        {"profile": []},
        {"profile": {"info_cache": "nope"}},
        [],
    ],
)
def test_chromium_unexpected_shapes_yield_no_profiles(document: object) -> None:
    assert parse_chromium_local_state(json.dumps(document).encode("utf-8"), CHROME) == ()


def test_chromium_invalid_json_raises_value_error() -> None:
    with pytest.raises(ValueError):
        parse_chromium_local_state(b"{", CHROME)


FIREFOX_INI = b"""
[Install4F96D1932A9F858E]
Default=Profiles/abc.default-release
Locked=1

[Profile1]
Name=work
IsRelative=1
Path=Profiles/xyz.work

; a comment line
[Profile0]
Name=default-release
IsRelative=1
Path=Profiles/abc.default-release
Default=1

[General]
StartWithLastProfile=1
Version=2

[Profile2]
name=last
path=Profiles/last.profile
"""


def test_firefox_profiles_include_last_section() -> None:
    profiles = parse_firefox_profiles_ini(FIREFOX_INI, FIREFOX)

    assert [p.name for p in profiles] == ["work", "default-release", "last"]
    assert profiles[-1].directory_name == "Profiles/last.profile"
    assert profiles[0].id == "org.mozilla.firefox/Profiles/xyz.work"


def test_firefox_incomplete_profile_sections_are_dropped() -> None:
    data = b"[Profile0]\nName=nameless-path\n\n[Profile1]\nPath=Profiles/no-name\n\n[Profile2]\nName=ok\nPath=p\n"
    profiles = parse_firefox_profiles_ini(data, FIREFOX)
    assert [p.name for p in profiles] == ["ok"]


def test_firefox_empty_input() -> None:
    assert parse_firefox_profiles_ini(b"", FIREFOX) == ()


def test_sources_return_nothing_for_missing_or_corrupt_files(tmp_path: Path) -> None:
    assert ChromiumLocalStateSource(tmp_path / "missing").load(CHROME) == ()
    assert FirefoxProfilesIniSource(tmp_path / "missing.ini").load(FIREFOX) == ()

    corrupt = tmp_path / "Local State"
    corrupt.write_bytes(b"\x00not json")
    assert ChromiumLocalStateSource(corrupt).load(CHROME) == ()


def test_sources_read_files(tmp_path: Path) -> None:
    local_state = tmp_path / "Local State"
    local_state.write_bytes(_local_state({"Default": {"name": "Person 1"}}))
    ini = tmp_path / "profiles.ini"
    ini.write_bytes(FIREFOX_INI)

    assert [p.name for p in ChromiumLocalStateSource(local_state).load(CHROME)] == ["Person 1"]
    assert len(FirefoxProfilesIniSource(ini).load(FIREFOX)) == 3


def test_default_profile_sources_per_platform(tmp_path: Path) -> None:
    mac = default_profile_sources(home=tmp_path, platform="darwin")
    linux = default_profile_sources(home=tmp_path, platform="linux")

    assert isinstance(mac[CHROME], ChromiumLocalStateSource)
    assert mac[CHROME].path == tmp_path / "Library" / "Application Support" / "Google" / "Chrome" / "Local State"
    assert isinstance(linux["firefox.desktop"], FirefoxProfilesIniSource)
    assert linux["firefox.desktop"].path == tmp_path / ".mozilla" / "firefox" / "profiles.ini"
    assert default_profile_sources(home=tmp_path, platform="win32") == {}


def test_family_ids_are_disjoint() -> None:
    assert CHROME in chromium_family_ids()
    assert FIREFOX in firefox_family_ids()
    assert not chromium_family_ids() & firefox_family_ids()
