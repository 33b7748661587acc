import hmac
from typing import Optional

from quizbuzz.services.game.roles import HostRole, PlayerRole, SessionRole
from quizbuzz.services.stores import PlayerStore


class Authenticator:
    """Resolve a (name, password) pair to a session role.

    Exactly one pair denotes the host. Everything else is checked against
    the player store; unknown names are registered when ``allow_registration``
    is set. Returns ``None`` for a rejected pair. Store errors propagate.
    """

    def __init__(self, player_store: PlayerStore, host_name: str, host_password: str,
                 allow_registration: bool = True) -> None:
        self.player_store = player_store
        self.host_name = host_name
        self.host_password = host_password
        self.allow_registration = allow_registration

    def authenticate(self, name, password) -> Optional[SessionRole]:
        if not isinstance(name, str) or not isinstance(password, str):
            return None
        name = name.strip()
        if not name or not password:
            return None
        if name == self.host_name:
            if hmac.compare_digest(password.encode('utf-8'), self.host_password.encode('utf-8')):
                return HostRole(name)
            return None
        known = self.player_store.check_credential(name, password)
        if known is True:
            return PlayerRole(name)
        if known is None and self.allow_registration:
            self.player_store.upsert(name, password=password)
            return PlayerRole(name)
        return None
