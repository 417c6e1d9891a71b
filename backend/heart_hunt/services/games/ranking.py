"""Ranking engine: leaderboards, per-user rank and stats over completed scores.

Everything here is computed fresh from ``game_score`` on every call; the
user aggregate columns are never consulted for ranking.
"""

from collections import namedtuple
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from heart_hunt import db
from heart_hunt.errors import StoreError, ValidationError
from heart_hunt.models import DIFFICULTIES, GameScore, User, iso_timestamp, utcnow
from .fields import as_int

TIME_FRAMES = ('all', 'daily', 'weekly', 'monthly')

TimeWindow = namedtuple('TimeWindow', ['start', 'end'])


def _naive_utc(moment: datetime) -> datetime:
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def _month_back(day: date) -> date:
    """Same day-of-month one calendar month earlier; overflow rolls forward."""
    year, month = day.year, day.month - 1
    if month == 0:
        year, month = year - 1, 12
    return date(year, month, 1) + timedelta(days=day.day - 1)


def time_window(time_frame: str, now: Optional[datetime] = None) -> TimeWindow:
    """Map a leaderboard time frame onto ``[start, end]`` in naive UTC.

    ``now`` should be timezone-aware; local midnight is taken in its zone.
    A naive ``now`` is interpreted as system local time. ``start`` is None
    for ``all``.
    """
    if time_frame not in TIME_FRAMES:
        raise ValidationError(f'timeFrame must be one of: {", ".join(TIME_FRAMES)}')
    local_now = now or datetime.now()
    if local_now.tzinfo is None:
        local_now = local_now.astimezone()
    end = _naive_utc(local_now)

    if time_frame == 'daily':
        start = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
    elif time_frame == 'weekly':
        start = local_now - timedelta(days=7)
    elif time_frame == 'monthly':
        start = datetime.combine(_month_back(local_now.date()), time(0), tzinfo=local_now.tzinfo)
    else:
        return TimeWindow(None, end)
    return TimeWindow(_naive_utc(start), end)


def accuracy(correct: int, total: int) -> int:
    """Percentage of correct answers, rounded half up; 0 when nothing was asked."""
    if not total:
        return 0
    return (200 * correct + total) // (2 * total)


def _avg(value) -> float:
    return round(float(value or 0), 2)


def leaderboard(limit: Any = 10, difficulty: Optional[str] = None, time_frame: Optional[str] = 'all',
                now: Optional[datetime] = None) -> Dict[str, Any]:
    limit = as_int({'limit': limit}, 'limit', default=10, minimum=1)
    time_frame = time_frame or 'all'
    window = time_window(time_frame, now)
    if difficulty in (None, '', 'all'):
        difficulty = None
    elif difficulty not in DIFFICULTIES:
        raise ValidationError(f'difficulty must be one of: all, {", ".join(DIFFICULTIES)}')

    filters = [GameScore.status == 'completed', GameScore.created_at <= window.end]
    if window.start is not None:
        filters.append(GameScore.created_at >= window.start)
    if difficulty:
        filters.append(GameScore.difficulty == difficulty)

    total_score = func.sum(GameScore.score).label('total_score')
    first_id = func.min(GameScore.id).label('first_id')
    try:
        rows = (
            db.session.query(
                GameScore.user_id,
                total_score,
                func.count(GameScore.id).label('games_played'),
                func.avg(GameScore.score).label('avg_score'),
                func.max(GameScore.created_at).label('last_played'),
                first_id,
            )
            .filter(*filters)
            .group_by(GameScore.user_id)
            .order_by(total_score.desc(), first_id.asc())
            .limit(limit)
            .all()
        )
        # Display name comes from each user's earliest record in the window
        names = {}
        if rows:
            first_records = GameScore.query.filter(GameScore.id.in_([r.first_id for r in rows])).all()
            names = {r.id: r.username for r in first_records}
    except SQLAlchemyError as exc:
        raise StoreError('Server error while fetching leaderboard', cause=exc)

    entries = []
    for position, row in enumerate(rows, start=1):
        entries.append({
            'rank': position,
            'userId': row.user_id,
            'username': names.get(row.first_id),
            'totalScore': int(row.total_score or 0),
            'gamesPlayed': int(row.games_played),
            'avgScore': _avg(row.avg_score),
            'lastPlayed': iso_timestamp(row.last_played),
        })
    return {
        'entries': entries,
        'timeFrame': time_frame,
        'difficulty': difficulty or 'all',
        'updatedAt': iso_timestamp(utcnow()),
    }


def user_rank(user_id: str) -> Optional[int]:
    """1 + the number of users with a strictly greater completed total."""
    user_id = str(user_id)
    games, total = (
        db.session.query(func.count(GameScore.id), func.coalesce(func.sum(GameScore.score), 0))
        .filter(GameScore.user_id == user_id, GameScore.status == 'completed')
        .one()
    )
    if not games:
        return None
    higher = (
        db.session.query(GameScore.user_id)
        .filter(GameScore.status == 'completed')
        .group_by(GameScore.user_id)
        .having(func.sum(GameScore.score) > total)
        .count()
    )
    return higher + 1


def user_stats(user_id: str) -> Dict[str, Any]:
    user_id = str(user_id)
    completed = [GameScore.user_id == user_id, GameScore.status == 'completed']
    try:
        overall = (
            db.session.query(
                func.count(GameScore.id),
                func.sum(GameScore.score),
                func.sum(GameScore.correct_answers),
                func.sum(GameScore.total_questions),
                func.avg(GameScore.score),
                func.max(GameScore.score),
            )
            .filter(*completed)
            .one()
        )
        by_difficulty = (
            db.session.query(
                GameScore.difficulty,
                func.count(GameScore.id),
                func.sum(GameScore.score),
                func.avg(GameScore.score),
                func.max(GameScore.score),
            )
            .filter(*completed)
            .group_by(GameScore.difficulty)
            .all()
        )
        user = db.session.get(User, user_id)
        rank = user_rank(user_id)
    except SQLAlchemyError as exc:
        raise StoreError('Server error while fetching user stats', cause=exc)

    games, score_sum, correct_sum, question_sum, avg_score, best = overall
    correct_sum = int(correct_sum or 0)
    question_sum = int(question_sum or 0)
    overall_stats = {
        'totalScore': int(score_sum or 0),
        'totalGames': int(games or 0),
        'totalCorrectAnswers': correct_sum,
        'totalQuestions': question_sum,
        'avgScore': _avg(avg_score),
        'bestScore': int(best or 0),
        'accuracy': accuracy(correct_sum, question_sum),
    }

    order = {name: idx for idx, name in enumerate(DIFFICULTIES)}
    difficulty_stats = [
        {
            'difficulty': name,
            'gamesPlayed': int(count),
            'totalScore': int(total or 0),
            'avgScore': _avg(avg),
            'bestScore': int(top or 0),
        }
        for name, count, total, avg, top in sorted(by_difficulty, key=lambda r: order.get(r[0], len(order)))
    ]

    return {
        'user': {
            'username': user.username if user else None,
            'avatar': user.avatar if user else None,
            'achievements': list(user.achievements or []) if user else [],
        },
        'overallStats': overall_stats,
        'difficultyStats': difficulty_stats,
        'rank': rank,
    }


def global_stats(recent: int = 10) -> Dict[str, Any]:
    try:
        total_games = GameScore.query.count()
        total_players = db.session.query(func.count(func.distinct(GameScore.user_id))).scalar() or 0
        total_score = db.session.query(func.coalesce(func.sum(GameScore.score), 0)).scalar() or 0
        by_difficulty = (
            db.session.query(GameScore.difficulty, func.count(GameScore.id))
            .group_by(GameScore.difficulty)
            .all()
        )
        recent_games = (
            GameScore.query.order_by(GameScore.created_at.desc(), GameScore.id.desc())
            .limit(recent)
            .all()
        )
        owners = {}
        owner_ids = {g.user_id for g in recent_games}
        if owner_ids:
            owners = {u.id: u for u in User.query.filter(User.id.in_(owner_ids)).all()}
    except SQLAlchemyError as exc:
        raise StoreError('Server error while fetching game stats', cause=exc)

    recent_payload: List[Dict[str, Any]] = []
    for game in recent_games:
        item = game.to_dict()
        owner = owners.get(game.user_id)
        item['user'] = {'id': owner.id, 'username': owner.username, 'avatar': owner.avatar} if owner else None
        recent_payload.append(item)

    return {
        'totalGames': total_games,
        'totalPlayers': int(total_players),
        'totalScore': int(total_score),
        'gamesByDifficulty': [{'difficulty': d, 'count': int(c)} for d, c in by_difficulty],
        'recentGames': recent_payload,
    }
