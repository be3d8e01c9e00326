"""
WordsRelay
Copyright (C) 2024 thiccaxe

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU Affero General Public License as published
by the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.

This program is distributed in the hope that it will be useful,
but WITHOUT ANY WARRANTY; without even the implied warranty of
MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
GNU Affero General Public License for more details.

You should have received a copy of the GNU Affero General Public License
along with this program.  If not, see <https://www.gnu.org/licenses/>.
"""

import logging
from typing import Awaitable, Callable, Hashable, List, Optional


class SessionRegistry:
    """
    Live connections and the username each one is logged in as.

    A connection maps to at most one username. A username maps to every
    connection logged in as it, in login order (multi-device). Both maps are
    only ever changed together through login() and logout().
    """

    def __init__(self):
        self._usernames: dict[Hashable, str] = dict()
        self._connections: dict[str, List[Hashable]] = dict()

    def login(self, username: str, connection: Hashable) -> None:
        if connection in self._usernames:
            # rebinding a connection drops its previous login
            self.logout(connection)
        self._usernames[connection] = username
        self._connections.setdefault(username, []).append(connection)
        logging.info(f"{username} is logging in ({len(self._connections[username])} session(s))")

    def logout(self, connection: Hashable) -> bool:
        username = self._usernames.pop(connection, None)
        if username is None:
            return False
        connections = self._connections[username]
        connections.remove(connection)
        if not connections:
            del self._connections[username]
        logging.info(f"{username} is logging out")
        return True

    def is_logged_in(self, connection_or_username) -> bool:
        if isinstance(connection_or_username, str):
            return connection_or_username in self._connections
        return connection_or_username in self._usernames

    def username_for(self, connection: Hashable) -> Optional[str]:
        return self._usernames.get(connection)

    def connections_of(self, username: str) -> List[Hashable]:
        return list(self._connections.get(username, ()))

    async def for_each_connection_of(self, username: str, action: Callable[[Hashable], Awaitable[None]]) -> None:
        # snapshot, action may log connections out
        for connection in self.connections_of(username):
            await action(connection)

    def __len__(self):
        return len(self._usernames)
