"""Rooms: one match, its roster and its turn clock per room id.

Every mutation of a session happens while holding `session.lock`; the
registry's own lock only guards the room/connection maps and is always
taken before a session lock, never after.
"""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set

from .clock import DEFAULT_TURN_SECONDS, TurnClock
from .rules import DEFAULT_HISTORY_LIMIT, Color, Coord, Match, Move


class Role(str, Enum):
    RED = 'red'
    BLACK = 'black'
    SPECTATOR = 'spectator'

    @property
    def color(self) -> Optional[Color]:
        if self is Role.SPECTATOR:
            return None
        return Color(self.value)

    @property
    def is_seated(self) -> bool:
        return self is not Role.SPECTATOR


SEAT_ORDER = (Role.RED, Role.BLACK)


class TickOutcome(str, Enum):
    COUNTDOWN = 'countdown'
    TIMEOUT = 'timeout'


@dataclass(frozen=True)
class Profile:
    identity: str
    display_name: str
    avatar: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Any) -> Optional['Profile']:
        """Profile from a client `user` payload; None without an id."""
        if not isinstance(data, dict):
            return None
        identity = data.get('id') or data.get('identity')
        if not identity:
            return None
        name = data.get('global_name') or data.get('username') or data.get('display_name') or str(identity)
        return cls(identity=str(identity), display_name=name, avatar=data.get('avatar'))


@dataclass
class Participant:
    identity: str
    display_name: str
    avatar: Optional[str]
    role: Role
    connection_id: str

    def to_dict(self, connected: bool = True) -> Dict[str, Any]:
        return {
            'identity': self.identity,
            'display_name': self.display_name,
            'avatar': self.avatar,
            'role': self.role.value,
            'connected': connected,
        }


@dataclass(frozen=True)
class MatchOutcome:
    """Concluded match: the winner's color and the seated players at that moment."""
    winner: Color
    seats: Dict[Role, str]

    def results(self):
        """(identity, won) for every seated player."""
        return [(identity, role.color is self.winner) for role, identity in self.seats.items()]


# scheduler(session, token) starts whatever drives the clock's ticks
ClockScheduler = Callable[['Session', int], None]


class Session:
    def __init__(self, room_id: str, turn_seconds: int = DEFAULT_TURN_SECONDS,
                 history_limit: int = DEFAULT_HISTORY_LIMIT,
                 scheduler: Optional[ClockScheduler] = None):
        self.room_id = room_id
        self.history_limit = history_limit
        self.match = Match(history_limit=history_limit)
        self.clock = TurnClock(turn_seconds)
        # keyed by identity; connection ids are rebindable
        self.participants: Dict[str, Participant] = {}
        self.connections: Set[str] = set()
        self.lock = threading.RLock()
        self._scheduler = scheduler
        self._outcome_recorded = False

    # ---- roster ----

    def participant_for(self, connection_id: str) -> Optional[Participant]:
        for participant in self.participants.values():
            if participant.connection_id == connection_id:
                return participant
        return None

    def seat(self, role: Role) -> Optional[Participant]:
        for participant in self.participants.values():
            if participant.role is role:
                return participant
        return None

    def join(self, profile: Profile, connection_id: str) -> Participant:
        """Seat a newcomer or rebind a returning identity to its new connection."""
        self.connections.add(connection_id)
        existing = self.participants.get(profile.identity)
        if existing is not None:
            existing.connection_id = connection_id
            existing.display_name = profile.display_name
            existing.avatar = profile.avatar
            participant = existing
        else:
            role = next((r for r in SEAT_ORDER if self.seat(r) is None), Role.SPECTATOR)
            participant = Participant(
                identity=profile.identity,
                display_name=profile.display_name,
                avatar=profile.avatar,
                role=role,
                connection_id=connection_id,
            )
            self.participants[profile.identity] = participant
        self.reset_clock()
        return participant

    def attach(self, connection_id: str) -> None:
        self.connections.add(connection_id)

    def leave(self, connection_id: str) -> bool:
        """Drop a connection. The roster is left alone; True when nobody is connected."""
        self.connections.discard(connection_id)
        return not self.connections

    # ---- match ----

    def legal_moves(self, coord: Coord) -> List[Move]:
        return self.match.legal_moves(coord)

    def move(self, connection_id: str, origin: Coord, target: Coord) -> bool:
        participant = self.participant_for(connection_id)
        if participant is None or participant.role.color is not self.match.turn:
            return False
        if not self.match.apply_move(origin, target):
            return False
        self.reset_clock()
        return True

    def reset_match(self) -> None:
        self.match = Match(history_limit=self.history_limit)
        self._outcome_recorded = False
        self.reset_clock()

    def take_outcome(self) -> Optional[MatchOutcome]:
        """Hand out the concluded match exactly once per match."""
        if self.match.winner is None or self._outcome_recorded:
            return None
        self._outcome_recorded = True
        seats = {}
        for role in SEAT_ORDER:
            participant = self.seat(role)
            if participant is not None:
                seats[role] = participant.identity
        return MatchOutcome(winner=self.match.winner, seats=seats)

    # ---- clock ----

    def start_clock(self) -> None:
        token = self.clock.start(self.match.winner is not None)
        self._schedule(token)

    def reset_clock(self) -> None:
        token = self.clock.reset(self.match.winner is not None)
        self._schedule(token)

    def stop_clock(self) -> None:
        self.clock.stop()

    def _schedule(self, token: Optional[int]) -> None:
        if token is not None and self._scheduler is not None:
            self._scheduler(self, token)

    def tick(self) -> Optional[TickOutcome]:
        """One second of the turn clock; skips the turn when it runs out."""
        if not self.clock.running:
            return None
        if not self.clock.tick():
            return TickOutcome.COUNTDOWN
        self.match.skip_turn()
        self.reset_clock()
        return TickOutcome.TIMEOUT

    # ---- projection ----

    def to_dict(self, status: Optional[str] = None) -> Dict[str, Any]:
        return {
            'room_id': self.room_id,
            'match': self.match.snapshot(),
            'participants': [
                p.to_dict(connected=p.connection_id in self.connections)
                for p in self.participants.values()
            ],
            'seconds_remaining': self.clock.seconds_remaining,
            'status': status,
        }


class SessionRegistry:
    """Owns every live session, keyed by room id, and which room each connection is in."""

    def __init__(self, turn_seconds: int = DEFAULT_TURN_SECONDS,
                 history_limit: int = DEFAULT_HISTORY_LIMIT,
                 scheduler: Optional[ClockScheduler] = None):
        self.turn_seconds = turn_seconds
        self.history_limit = history_limit
        self.scheduler = scheduler
        self._sessions: Dict[str, Session] = {}
        self._rooms_by_connection: Dict[str, str] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, room_id: str) -> bool:
        return room_id in self._sessions

    def get(self, room_id: str) -> Optional[Session]:
        with self._lock:
            return self._sessions.get(room_id)

    def get_or_create(self, room_id: str) -> Session:
        with self._lock:
            session = self._sessions.get(room_id)
            if session is None:
                session = Session(
                    room_id,
                    turn_seconds=self.turn_seconds,
                    history_limit=self.history_limit,
                    scheduler=self.scheduler,
                )
                self._sessions[room_id] = session
            return session

    def remove(self, room_id: str) -> Optional[Session]:
        with self._lock:
            session = self._sessions.pop(room_id, None)
            if session is None:
                return None
            with session.lock:
                session.stop_clock()
            for connection_id in list(session.connections):
                if self._rooms_by_connection.get(connection_id) == room_id:
                    self._rooms_by_connection.pop(connection_id, None)
            return session

    def reset_match(self, room_id: str) -> Optional[Session]:
        session = self.get(room_id)
        if session is None:
            return None
        with session.lock:
            session.reset_match()
        return session

    def session_for(self, connection_id: str) -> Optional[Session]:
        with self._lock:
            room_id = self._rooms_by_connection.get(connection_id)
            return self._sessions.get(room_id) if room_id is not None else None

    def attach(self, room_id: str, connection_id: str) -> Session:
        """First, unauthenticated phase of a join: the connection enters the room."""
        with self._lock:
            previous = self._rooms_by_connection.get(connection_id)
            if previous is not None and previous != room_id:
                self._detach_locked(connection_id)
            session = self.get_or_create(room_id)
            with session.lock:
                session.attach(connection_id)
            self._rooms_by_connection[connection_id] = room_id
            return session

    def join(self, room_id: str, connection_id: str, profile: Profile) -> Optional[Participant]:
        """Second phase of a join, once the identity is known.

        Abandoned (None) when the connection left the room in the meantime.
        """
        with self._lock:
            session = self._sessions.get(room_id)
            if session is None or self._rooms_by_connection.get(connection_id) != room_id:
                return None
            with session.lock:
                return session.join(profile, connection_id)

    def detach(self, connection_id: str) -> Optional[str]:
        """A connection went away. Returns the room id if that tore the session down."""
        with self._lock:
            return self._detach_locked(connection_id)

    def _detach_locked(self, connection_id: str) -> Optional[str]:
        room_id = self._rooms_by_connection.pop(connection_id, None)
        if room_id is None:
            return None
        session = self._sessions.get(room_id)
        if session is None:
            return None
        with session.lock:
            empty = session.leave(connection_id)
        if empty:
            self.remove(room_id)
            return room_id
        return None
