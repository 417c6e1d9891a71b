"""Session tracker: one mutable row per play session, bridging start and end."""

import uuid
from typing import Any, Dict, List

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from heart_hunt import db
from heart_hunt.errors import NotFoundError, StoreError
from heart_hunt.models import DIFFICULTIES, GAME_TYPES, SESSION_STATUSES, GameSession, utcnow
from .fields import as_choice, as_int, as_text, as_timestamp, require


def generate_session_id() -> str:
    return f"session_{uuid.uuid4().hex}"


def start_session(payload: Dict[str, Any]) -> GameSession:
    require(payload, 'userId', 'username', message='UserId and username are required')
    session = GameSession(
        session_id=generate_session_id(),
        user_id=as_text(payload, 'userId'),
        username=as_text(payload, 'username'),
        difficulty=as_choice(payload, 'difficulty', DIFFICULTIES, 'Easy'),
        game_type=as_choice(payload, 'gameType', GAME_TYPES, 'main'),
        start_time=as_timestamp(payload, 'startTime', default=utcnow()),
        status=as_choice(payload, 'status', SESSION_STATUSES, 'active'),
    )
    try:
        db.session.add(session)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StoreError('Server error while saving session', cause=exc)
    current_app.logger.info(f"[session-start] session={session.session_id} user={session.user_id} difficulty={session.difficulty}")
    return session


def update_session(session_id: str, payload: Dict[str, Any]) -> GameSession:
    """Apply the end-of-session fields present in ``payload``.

    Last write wins; there is no version check between concurrent updates.
    """
    changes = {}
    end_time = as_timestamp(payload, 'endTime')
    if end_time is not None:
        changes['end_time'] = end_time
    status = as_choice(payload, 'status', SESSION_STATUSES)
    if status is not None:
        changes['status'] = status
    for field, column in (
        ('finalScore', 'final_score'),
        ('correctAnswers', 'correct_answers'),
        ('totalQuestions', 'total_questions'),
    ):
        value = as_int(payload, field)
        if value is not None:
            changes[column] = value

    session = GameSession.query.filter_by(session_id=session_id).first()
    if session is None:
        raise NotFoundError('Game session not found')
    for column, value in changes.items():
        setattr(session, column, value)
    try:
        db.session.add(session)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StoreError('Server error while updating session', cause=exc)
    current_app.logger.info(f"[session-update] session={session_id} fields={sorted(changes)}")
    return session


def active_sessions(user_id: str) -> List[GameSession]:
    try:
        return (
            GameSession.query.filter_by(user_id=str(user_id), status='active')
            .order_by(GameSession.start_time.desc())
            .all()
        )
    except SQLAlchemyError as exc:
        raise StoreError('Server error while fetching active sessions', cause=exc)
