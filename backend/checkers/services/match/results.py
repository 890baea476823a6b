from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from checkers import db
from checkers.models import UserRecord
from .sessions import MatchOutcome


def get_record(identity: str) -> Dict[str, int]:
    record = db.session.get(UserRecord, identity)
    if record is None:
        return {'wins': 0, 'matches': 0}
    return record.to_dict()


def update_record(identity: str, wins_delta: int = 0, matches_delta: int = 0) -> Dict[str, int]:
    record = db.session.get(UserRecord, identity)
    if record is None:
        record = UserRecord(identity=identity, wins=0, matches=0)
    record.wins = (record.wins or 0) + (wins_delta or 0)
    record.matches = (record.matches or 0) + (matches_delta or 0)
    db.session.add(record)
    db.session.commit()
    return record.to_dict()


def record_match_result(outcome: Optional[MatchOutcome]) -> Dict[str, Dict[str, int]]:
    """Count the concluded match for each seated player and the win for the winner.

    Returns the updated records keyed by identity.
    """
    if outcome is None:
        return {}
    updated = {}
    for identity, won in outcome.results():
        updated[identity] = update_record(identity, wins_delta=1 if won else 0, matches_delta=1)
    return updated


def persist_outcome(app, room_id: str, outcome: Optional[MatchOutcome]) -> bool:
    """Write a concluded match to the records table.

    A failed write is rolled back and logged; the match itself stays decided.
    """
    if outcome is None:
        return False
    try:
        record_match_result(outcome)
    except SQLAlchemyError:
        db.session.rollback()
        app.logger.exception(f"[match-over] room={room_id} winner={outcome.winner.value} records not saved")
        return False
    app.logger.info(f"[match-over] room={room_id} winner={outcome.winner.value}")
    return True
