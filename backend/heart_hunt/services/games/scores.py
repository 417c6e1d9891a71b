"""Score record store: append-only attempt results plus user aggregates."""

import math
from typing import Any, Dict, List, Tuple

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from heart_hunt import db
from heart_hunt.errors import StoreError, ValidationError
from heart_hunt.models import DIFFICULTIES, GAME_TYPES, SCORE_STATUSES, GameScore, User
from .fields import as_choice, as_int, as_text, require


def _build_record(payload: Dict[str, Any], **forced: Any) -> GameScore:
    require(payload, 'userId', 'username', 'score', message='UserId, username, and score are required')
    score = as_int(payload, 'score')
    correct = as_int(payload, 'correctAnswers', default=0)
    total = as_int(payload, 'totalQuestions', default=0)
    if correct > total:
        raise ValidationError('correctAnswers cannot exceed totalQuestions')
    session_id = payload.get('sessionId') or None
    return GameScore(
        user_id=as_text(payload, 'userId'),
        username=as_text(payload, 'username'),
        score=score,
        final_score=score,
        difficulty=forced.get('difficulty') or as_choice(payload, 'difficulty', DIFFICULTIES, 'Easy'),
        status=forced.get('status') or as_choice(payload, 'status', SCORE_STATUSES, 'completed'),
        correct_answers=correct,
        total_questions=total,
        game_type=forced.get('game_type') or as_choice(payload, 'gameType', GAME_TYPES, 'main'),
        session_id=str(session_id) if session_id is not None else None,
        time_spent=as_int(payload, 'timeSpent', default=0),
    )


def _persist(record: GameScore) -> GameScore:
    """Insert the record and bump the owner's aggregates in one transaction."""
    try:
        db.session.add(record)
        db.session.query(User).filter(User.id == record.user_id).update(
            {
                User.total_score: User.total_score + record.score,
                User.games_played: User.games_played + 1,
                User.correct_answers: User.correct_answers + record.correct_answers,
            },
            synchronize_session=False,
        )
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StoreError('Server error while saving score', cause=exc)
    current_app.logger.info(
        f"[save-score] user={record.user_id} score={record.score} difficulty={record.difficulty} type={record.game_type}"
    )
    return record


def save_score(payload: Dict[str, Any]) -> GameScore:
    return _persist(_build_record(payload))


def save_mini_game_score(payload: Dict[str, Any]) -> GameScore:
    """Mini-game results are always Easy, completed and typed ``mini``."""
    record = _build_record(payload, difficulty='Easy', status='completed', game_type='mini')
    return _persist(record)


def user_scores(user_id: str, limit: Any = None, page: Any = None) -> Tuple[List[GameScore], Dict[str, int]]:
    """Return one page of a user's records, newest first, with pagination metadata."""
    default_limit = int(current_app.config.get('DEFAULT_PAGE_LIMIT', 10))
    args = {'limit': limit, 'page': page}
    limit = as_int(args, 'limit', default=default_limit, minimum=1)
    page = as_int(args, 'page', default=1, minimum=1)

    query = GameScore.query.filter_by(user_id=str(user_id))
    try:
        total = query.count()
        scores = (
            query.order_by(GameScore.created_at.desc(), GameScore.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
    except SQLAlchemyError as exc:
        raise StoreError('Server error while fetching user scores', cause=exc)
    pagination = {
        'page': page,
        'limit': limit,
        'total': total,
        'pages': math.ceil(total / limit),
    }
    return scores, pagination
