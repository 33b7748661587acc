"""Per-connection roles.

A session is exactly one of ``Unauthenticated``, ``PlayerRole(name)`` or
``HostRole(name)``. Only players carry a scored identity; the host name is
kept for logging.
"""
from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Unauthenticated:
    is_host = False
    is_player = False
    name = None


@dataclass(frozen=True)
class PlayerRole:
    name: str
    is_host = False
    is_player = True


@dataclass(frozen=True)
class HostRole:
    name: str
    is_host = True
    is_player = False


SessionRole = Union[Unauthenticated, PlayerRole, HostRole]

UNAUTHENTICATED = Unauthenticated()


def is_authenticated(role: SessionRole) -> bool:
    return not isinstance(role, Unauthenticated)
