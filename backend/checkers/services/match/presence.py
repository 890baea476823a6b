from typing import Iterable

from .rules import Match
from .sessions import Participant, Role


def status_text(match: Match, participants: Iterable[Participant]) -> str:
    """Short human-readable status, e.g. 'Turn: RED (alice vs bob)'."""
    if match.winner is not None:
        headline = f"Winner: {match.winner.value.upper()}!"
    else:
        headline = f"Turn: {match.turn.value.upper()}"

    seats = {p.role: p.display_name for p in participants if p.role.is_seated}
    red, black = seats.get(Role.RED), seats.get(Role.BLACK)
    if red and black:
        return f"{headline} ({red} vs {black})"
    if red or black:
        return f"{headline} (waiting for opponent)"
    return headline
