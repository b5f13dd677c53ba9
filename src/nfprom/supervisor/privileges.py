"""
Dropping root privileges in the metrics server process.

The group is changed before the user: once the uid is no longer 0 the process
may not change its group any more.
"""

from __future__ import annotations

import grp
import os
import pwd

from nfprom.errors import (
    GroupLookupError,
    InvalidIdentityError,
    SetGroupError,
    SetUserError,
    UserLookupError,
)
from nfprom.utilities.logging_patterns import get_logger

logger = get_logger(__name__, component="privileges")

# (uid_t)-1 is reserved by setreuid and friends
MAX_ID = 2**32 - 2


def parse_numeric_id(value: str, kind: str) -> int | None:
    """Numeric uid/gid in ``value``, ``None`` when it is a name.

    Names never start with a digit or a sign, so such a value that is not a
    valid id is reported as malformed rather than looked up.
    """
    if not value:
        raise InvalidIdentityError(f"empty {kind} id", identity=value)
    if value.isascii() and value.isdigit():
        number = int(value)
        if number > MAX_ID:
            raise InvalidIdentityError(f"{kind} id {value} is out of range", identity=value)
        return number
    if value[0].isdigit() or value[0] in "+-":
        raise InvalidIdentityError(f"malformed numeric {kind} id {value!r}", identity=value)
    return None


def resolve_gid(group: str) -> int:
    """
    Raises:
        InvalidIdentityError: ``group`` looks numeric but is not a valid gid.
        GroupLookupError: no group with that name exists.
    """
    gid = parse_numeric_id(group, "group")
    if gid is not None:
        return gid
    try:
        return grp.getgrnam(group).gr_gid
    except KeyError as exc:
        raise GroupLookupError(
            f"could not look up GID for group {group}", identity=group, original_error=exc
        ) from exc


def resolve_uid(user: str) -> int:
    """
    Raises:
        InvalidIdentityError: ``user`` looks numeric but is not a valid uid.
        UserLookupError: no user with that name exists.
    """
    uid = parse_numeric_id(user, "user")
    if uid is not None:
        return uid
    try:
        return pwd.getpwnam(user).pw_uid
    except KeyError as exc:
        raise UserLookupError(
            f"could not look up UID for user {user}", identity=user, original_error=exc
        ) from exc


def drop_privileges(user: str, group: str) -> tuple[int, int]:
    """Switch the process to ``group`` and then ``user``; returns ``(uid, gid)``.

    Raises:
        PrivilegeDropError: a name could not be resolved or a system call failed.
            Each step raises its own subclass.
    """
    gid = resolve_gid(group)
    uid = resolve_uid(user)

    try:
        if os.geteuid() == 0:
            os.setgroups([])
        os.setgid(gid)
    except OSError as exc:
        raise SetGroupError(
            f"could not drop privs to group {group}/{gid}: {exc}", identity=group, original_error=exc
        ) from exc

    try:
        os.setuid(uid)
    except OSError as exc:
        raise SetUserError(
            f"could not drop privs to user {user}/{uid}: {exc}", identity=user, original_error=exc
        ) from exc

    logger.info(f"Dropped privileges to {user}/{uid}:{group}/{gid}", uid=uid, gid=gid)
    return uid, gid


__all__ = ["drop_privileges", "resolve_gid", "resolve_uid", "parse_numeric_id", "MAX_ID"]
