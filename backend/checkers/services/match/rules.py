"""Checkers rules for a single match.

Red starts at the bottom (rows 5-7) and moves up the board, black starts
at the top (rows 0-2) and moves down. Captures are mandatory, a capturing
piece must keep jumping while it can, and reaching the far back rank
promotes a pawn to a king and ends the turn.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional, Tuple, Union

BOARD_SIZE = 8
DEFAULT_HISTORY_LIMIT = 10

# up-left, up-right, down-left, down-right
UP_DIRECTIONS = ((-1, -1), (-1, 1))
DOWN_DIRECTIONS = ((1, -1), (1, 1))


class Color(str, Enum):
    RED = 'red'
    BLACK = 'black'

    @property
    def opponent(self) -> 'Color':
        return Color.BLACK if self is Color.RED else Color.RED

    @property
    def back_rank(self) -> int:
        """Row on which this side's pawns are promoted."""
        return 0 if self is Color.RED else BOARD_SIZE - 1


class Rank(str, Enum):
    PAWN = 'pawn'
    KING = 'king'


class Piece(Enum):
    EMPTY = 0
    RED_PAWN = 1
    BLACK_PAWN = 2
    RED_KING = 3
    BLACK_KING = 4

    @property
    def owner(self) -> Optional[Color]:
        if self in (Piece.RED_PAWN, Piece.RED_KING):
            return Color.RED
        if self in (Piece.BLACK_PAWN, Piece.BLACK_KING):
            return Color.BLACK
        return None

    @property
    def rank(self) -> Optional[Rank]:
        if self is Piece.EMPTY:
            return None
        return Rank.KING if self in (Piece.RED_KING, Piece.BLACK_KING) else Rank.PAWN

    @property
    def is_king(self) -> bool:
        return self.rank is Rank.KING

    @property
    def directions(self):
        if self.is_king:
            return UP_DIRECTIONS + DOWN_DIRECTIONS
        if self.owner is Color.RED:
            return UP_DIRECTIONS
        if self.owner is Color.BLACK:
            return DOWN_DIRECTIONS
        return ()

    @property
    def label(self) -> str:
        if self is Piece.EMPTY:
            return 'Empty'
        return f"{self.owner.value.capitalize()} {self.rank.value.capitalize()}"

    def promoted(self) -> 'Piece':
        if self is Piece.RED_PAWN:
            return Piece.RED_KING
        if self is Piece.BLACK_PAWN:
            return Piece.BLACK_KING
        return self


class Coord(NamedTuple):
    row: int
    col: int

    def on_board(self) -> bool:
        return 0 <= self.row < BOARD_SIZE and 0 <= self.col < BOARD_SIZE

    def offset(self, dr: int, dc: int) -> 'Coord':
        return Coord(self.row + dr, self.col + dc)

    def to_dict(self) -> Dict[str, int]:
        return {'row': self.row, 'col': self.col}

    @classmethod
    def parse(cls, data: Any) -> Optional['Coord']:
        """Build a coordinate from `{row, col}` or `{r, c}`; None when malformed."""
        if not isinstance(data, dict):
            return None
        row = data.get('row', data.get('r'))
        col = data.get('col', data.get('c'))
        if isinstance(row, bool) or isinstance(col, bool):
            return None
        if not isinstance(row, int) or not isinstance(col, int):
            return None
        return cls(row, col)


@dataclass(frozen=True)
class Move:
    origin: Coord
    target: Coord
    captured: Optional[Coord] = None

    @property
    def is_capture(self) -> bool:
        return self.captured is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'from': self.origin.to_dict(),
            'to': self.target.to_dict(),
            'captured': self.captured.to_dict() if self.captured else None,
        }


@dataclass(frozen=True)
class MoveRecord:
    actor: Color
    origin: Coord
    target: Coord
    piece: Piece
    captured: Optional[Coord] = None
    promoted: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'actor': self.actor.value,
            'from': self.origin.to_dict(),
            'to': self.target.to_dict(),
            'piece': self.piece.label,
            'captured': self.captured.to_dict() if self.captured else None,
            'promoted': self.promoted,
        }


@dataclass(frozen=True)
class SkipRecord:
    actor: Color
    skipped: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {'actor': self.actor.value, 'skipped': True}


LogEntry = Union[MoveRecord, SkipRecord]


def initial_board() -> List[List[Piece]]:
    board = [[Piece.EMPTY] * BOARD_SIZE for _ in range(BOARD_SIZE)]
    for r in range(BOARD_SIZE):
        for c in range(BOARD_SIZE):
            if (r + c) % 2 == 1:
                if r < 3:
                    board[r][c] = Piece.BLACK_PAWN
                elif r > 4:
                    board[r][c] = Piece.RED_PAWN
    return board


class Match:
    """Mutable state of one checkers match.

    The match never raises on bad input: unknown or off-board coordinates
    simply have no legal moves, and `apply_move` reports False for anything
    that is not currently legal.
    """

    def __init__(self, history_limit: int = DEFAULT_HISTORY_LIMIT):
        self.board = initial_board()
        self.turn = Color.RED
        self.winner: Optional[Color] = None
        self.forced_moves: List[Move] = []
        self.move_log: List[LogEntry] = []
        self.history_limit = history_limit
        self._refresh_forced_moves()

    @classmethod
    def from_position(cls, pieces: Dict[Tuple[int, int], Piece], turn: Color = Color.RED,
                      history_limit: int = DEFAULT_HISTORY_LIMIT) -> 'Match':
        """Start from an arbitrary position; `pieces` maps (row, col) to a piece."""
        match = cls(history_limit=history_limit)
        match.board = [[Piece.EMPTY] * BOARD_SIZE for _ in range(BOARD_SIZE)]
        for (r, c), piece in pieces.items():
            match.board[r][c] = piece
        match.turn = turn
        match._refresh_forced_moves()
        match._check_winner()
        return match

    # ---- board access ----

    def piece_at(self, coord: Coord) -> Optional[Piece]:
        if not coord.on_board():
            return None
        return self.board[coord.row][coord.col]

    def set_piece(self, coord: Coord, piece: Piece) -> None:
        self.board[coord.row][coord.col] = piece

    def _squares_of(self, color: Color):
        for r in range(BOARD_SIZE):
            for c in range(BOARD_SIZE):
                if self.board[r][c].owner is color:
                    yield Coord(r, c)

    # ---- move generation ----

    def piece_jumps(self, coord: Coord) -> List[Move]:
        """All captures available to the piece at `coord`, ignoring whose turn it is."""
        piece = self.piece_at(coord)
        if piece is None or piece is Piece.EMPTY:
            return []
        jumps = []
        for dr, dc in piece.directions:
            over = coord.offset(dr, dc)
            landing = coord.offset(2 * dr, 2 * dc)
            if not landing.on_board():
                continue
            jumped = self.piece_at(over)
            if jumped is Piece.EMPTY or jumped.owner is piece.owner:
                continue
            if self.piece_at(landing) is not Piece.EMPTY:
                continue
            jumps.append(Move(coord, landing, captured=over))
        return jumps

    def all_jumps(self, color: Color) -> List[Move]:
        jumps = []
        for coord in self._squares_of(color):
            jumps.extend(self.piece_jumps(coord))
        return jumps

    def _piece_steps(self, coord: Coord) -> List[Move]:
        piece = self.piece_at(coord)
        steps = []
        for dr, dc in piece.directions:
            target = coord.offset(dr, dc)
            if target.on_board() and self.piece_at(target) is Piece.EMPTY:
                steps.append(Move(coord, target))
        return steps

    def legal_moves(self, coord: Coord) -> List[Move]:
        piece = self.piece_at(coord)
        if piece is None or piece.owner is None or piece.owner is not self.turn:
            return []
        if self.forced_moves:
            return [m for m in self.forced_moves if m.origin == coord]
        return self._piece_steps(coord)

    def has_legal_moves(self) -> bool:
        return any(self.legal_moves(coord) for coord in self._squares_of(self.turn))

    def _refresh_forced_moves(self) -> None:
        self.forced_moves = self.all_jumps(self.turn)

    # ---- mutation ----

    def apply_move(self, origin: Coord, target: Coord) -> bool:
        """Apply the move origin -> target if it is legal right now.

        Returns False, leaving the match untouched, for anything else.
        """
        if self.winner is not None:
            return False
        move = next((m for m in self.legal_moves(origin) if m.target == target), None)
        if move is None:
            return False

        piece = self.piece_at(origin)
        self.set_piece(origin, Piece.EMPTY)
        if move.captured is not None:
            self.set_piece(move.captured, Piece.EMPTY)

        promoted = not piece.is_king and target.row == piece.owner.back_rank
        self.set_piece(target, piece.promoted() if promoted else piece)

        self.move_log.append(MoveRecord(
            actor=self.turn,
            origin=origin,
            target=target,
            piece=piece,
            captured=move.captured,
            promoted=promoted,
        ))

        if move.is_capture and not promoted:
            further = self.piece_jumps(target)
            if further:
                # Same side keeps the turn and must continue with this piece.
                self.forced_moves = further
                return True

        self._end_turn()
        return True

    def skip_turn(self) -> bool:
        """Forfeit the current turn (the clock ran out)."""
        if self.winner is not None:
            return False
        self.move_log.append(SkipRecord(actor=self.turn))
        self._end_turn()
        return True

    def _end_turn(self) -> None:
        self.turn = self.turn.opponent
        self._refresh_forced_moves()
        self._check_winner()

    def _check_winner(self) -> None:
        # Having no pieces left is just one way of having no legal moves.
        if not self.has_legal_moves():
            self.winner = self.turn.opponent

    # ---- projection ----

    def snapshot(self) -> Dict[str, Any]:
        recent = self.move_log[-self.history_limit:] if self.history_limit > 0 else []
        return {
            'board': [[piece.value for piece in row] for row in self.board],
            'turn': self.turn.value,
            'winner': self.winner.value if self.winner else None,
            'forced_moves': [m.to_dict() for m in self.forced_moves],
            'history': [entry.to_dict() for entry in recent],
        }
