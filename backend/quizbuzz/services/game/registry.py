from typing import Dict, List, Optional

from quizbuzz.services.game.roles import UNAUTHENTICATED, SessionRole


class SessionRegistry:
    """Connected socket ids and the role each one has.

    Lives only in memory; a restart starts from an empty registry.
    """

    def __init__(self) -> None:
        self._roles: Dict[str, SessionRole] = {}

    def __contains__(self, sid: str) -> bool:
        return sid in self._roles

    def __len__(self) -> int:
        return len(self._roles)

    def add(self, sid: str) -> None:
        self._roles[sid] = UNAUTHENTICATED

    def remove(self, sid: str) -> Optional[SessionRole]:
        return self._roles.pop(sid, None)

    def role_of(self, sid: str) -> SessionRole:
        return self._roles.get(sid, UNAUTHENTICATED)

    def assign(self, sid: str, role: SessionRole) -> None:
        if sid not in self._roles:
            raise KeyError(sid)
        self._roles[sid] = role

    def detach(self, sid: str) -> None:
        if sid in self._roles:
            self._roles[sid] = UNAUTHENTICATED

    def all_sids(self) -> List[str]:
        return list(self._roles)

    def host_sids(self) -> List[str]:
        return [sid for sid, role in self._roles.items() if role.is_host]

    def sids_for_player(self, name: str) -> List[str]:
        return [sid for sid, role in self._roles.items()
                if role.is_player and role.name == name]

    def active_players(self) -> List[str]:
        """Names of connected players, in connection order, without repeats."""
        seen = []
        for role in self._roles.values():
            if role.is_player and role.name not in seen:
                seen.append(role.name)
        return seen
