from __future__ import annotations

import grp
import os
import pwd
from types import SimpleNamespace

import pytest

from nfprom.errors import (
    GroupLookupError,
    InvalidIdentityError,
    PrivilegeDropError,
    SetGroupError,
    SetUserError,
    UserLookupError,
)
from nfprom.supervisor import privileges
from nfprom.supervisor.privileges import drop_privileges, parse_numeric_id


@pytest.fixture
def calls(monkeypatch: pytest.MonkeyPatch) -> list[tuple]:
    """Record identity lookups and switches instead of performing them."""
    recorded: list[tuple] = []
    groups = {"nogroup": 65534, "exporter": 998}
    users = {"nobody": 65534, "exporter": 997}

    def getgrnam(name: str):
        recorded.append(("getgrnam", name))
        return SimpleNamespace(gr_gid=groups[name])

    def getpwnam(name: str):
        recorded.append(("getpwnam", name))
        return SimpleNamespace(pw_uid=users[name])

    monkeypatch.setattr(grp, "getgrnam", getgrnam)
    monkeypatch.setattr(pwd, "getpwnam", getpwnam)
    monkeypatch.setattr(os, "geteuid", lambda: 0)
    monkeypatch.setattr(os, "setgroups", lambda ids: recorded.append(("setgroups", list(ids))))
    monkeypatch.setattr(os, "setgid", lambda gid: recorded.append(("setgid", gid)))
    monkeypatch.setattr(os, "setuid", lambda uid: recorded.append(("setuid", uid)))
    return recorded


def test_drops_group_before_user(calls: list[tuple]) -> None:
    assert drop_privileges("exporter", "exporter") == (997, 998)

    assert calls == [
        ("getgrnam", "exporter"),
        ("getpwnam", "exporter"),
        ("setgroups", []),
        ("setgid", 998),
        ("setuid", 997),
    ]


def test_numeric_ids_skip_lookup(calls: list[tuple]) -> None:
    assert drop_privileges("1000", "1001") == (1000, 1001)

    assert ("getgrnam", "1001") not in calls
    assert ("getpwnam", "1000") not in calls
    assert calls[-1] == ("setuid", 1000)


def test_supplementary_groups_kept_when_not_root(
    calls: list[tuple], monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(os, "geteuid", lambda: 1000)

    drop_privileges("nobody", "nogroup")

    assert all(call[0] != "setgroups" for call in calls)


def test_unknown_group_stops_before_user(calls: list[tuple]) -> None:
    with pytest.raises(GroupLookupError) as exc_info:
        drop_privileges("nobody", "no-such-group")

    assert exc_info.value.error_code == "GROUP_LOOKUP_FAILED"
    assert calls == [("getgrnam", "no-such-group")]


def test_unknown_user_changes_nothing(calls: list[tuple]) -> None:
    with pytest.raises(UserLookupError):
        drop_privileges("no-such-user", "nogroup")

    assert not [call for call in calls if call[0].startswith("set")]


def test_setgid_failure(calls: list[tuple], monkeypatch: pytest.MonkeyPatch) -> None:
    def refuse(gid: int) -> None:
        raise PermissionError("Operation not permitted")

    monkeypatch.setattr(os, "setgid", refuse)

    with pytest.raises(SetGroupError):
        drop_privileges("nobody", "nogroup")
    assert all(call[0] != "setuid" for call in calls)


def test_setuid_failure(calls: list[tuple], monkeypatch: pytest.MonkeyPatch) -> None:
    def refuse(uid: int) -> None:
        raise PermissionError("Operation not permitted")

    monkeypatch.setattr(os, "setuid", refuse)

    with pytest.raises(SetUserError) as exc_info:
        drop_privileges("nobody", "nogroup")
    assert isinstance(exc_info.value, PrivilegeDropError)


@pytest.mark.parametrize("value", ["", "12ab", "-1", "+5", str(privileges.MAX_ID + 1)])
def test_malformed_numeric_ids(value: str) -> None:
    with pytest.raises(InvalidIdentityError):
        parse_numeric_id(value, "user")


@pytest.mark.parametrize(("value", "expected"), [("0", 0), ("65534", 65534), ("nobody", None)])
def test_parse_numeric_id(value: str, expected: int | None) -> None:
    assert parse_numeric_id(value, "group") == expected
