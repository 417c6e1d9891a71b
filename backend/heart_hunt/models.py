from heart_hunt import db, bcrypt
from flask_login import UserMixin
from datetime import datetime, timezone
import uuid

DIFFICULTIES = ('Easy', 'Medium', 'Hard', 'Expert')
SCORE_STATUSES = ('active', 'completed', 'abandoned')
SESSION_STATUSES = ('active', 'completed', 'abandoned', 'timeout')
GAME_TYPES = ('main', 'mini')


def utcnow():
    """Naive UTC timestamp, the form every DateTime column is stored in."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def iso_timestamp(value):
    return value.isoformat() + 'Z' if value else None


def _new_user_id():
    return uuid.uuid4().hex


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.String(64), primary_key=True, default=_new_user_id)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    email = db.Column(db.String(120), unique=True, nullable=True, index=True)
    password_hash = db.Column(db.String(128), nullable=False, default='')
    avatar = db.Column(db.String(256), nullable=True)
    achievements = db.Column(db.JSON, nullable=False, default=list)
    # Aggregates maintained on every score save
    total_score = db.Column(db.Integer, nullable=False, default=0)
    games_played = db.Column(db.Integer, nullable=False, default=0)
    correct_answers = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        if not self.password_hash:
            return False
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'avatar': self.avatar,
            'achievements': list(self.achievements or []),
            'totalScore': self.total_score or 0,
            'gamesPlayed': self.games_played or 0,
            'correctAnswers': self.correct_answers or 0,
        }

    def __repr__(self):
        return f'<User {self.username}>'


class GameScore(db.Model):
    """One immutable row per finished (or abandoned) attempt."""
    __tablename__ = 'game_score'
    id = db.Column(db.Integer, primary_key=True)
    # Soft reference: scores may outlive or predate the user row
    user_id = db.Column(db.String(64), nullable=False, index=True)
    username = db.Column(db.String(64), nullable=False)
    score = db.Column(db.Integer, nullable=False, default=0)
    final_score = db.Column(db.Integer, nullable=False, default=0)
    difficulty = db.Column(db.String(16), nullable=False, default='Easy', index=True)
    status = db.Column(db.String(16), nullable=False, default='completed', index=True)
    correct_answers = db.Column(db.Integer, nullable=False, default=0)
    total_questions = db.Column(db.Integer, nullable=False, default=0)
    game_type = db.Column(db.String(16), nullable=False, default='main')
    session_id = db.Column(db.String(64), nullable=True)
    time_spent = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'username': self.username,
            'score': self.score,
            'finalScore': self.final_score,
            'difficulty': self.difficulty,
            'status': self.status,
            'correctAnswers': self.correct_answers,
            'totalQuestions': self.total_questions,
            'gameType': self.game_type,
            'sessionId': self.session_id,
            'timeSpent': self.time_spent,
            'createdAt': iso_timestamp(self.created_at),
        }

    def __repr__(self):
        return f'<GameScore user={self.user_id} score={self.score}>'


class GameSession(db.Model):
    __tablename__ = 'game_session'
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.String(64), unique=True, nullable=False, index=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    username = db.Column(db.String(64), nullable=False)
    difficulty = db.Column(db.String(16), nullable=False, default='Easy')
    game_type = db.Column(db.String(16), nullable=False, default='main')
    start_time = db.Column(db.DateTime, nullable=False, default=utcnow)
    end_time = db.Column(db.DateTime, nullable=True)
    status = db.Column(db.String(16), nullable=False, default='active', index=True)
    final_score = db.Column(db.Integer, nullable=False, default=0)
    correct_answers = db.Column(db.Integer, nullable=False, default=0)
    total_questions = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'sessionId': self.session_id,
            'userId': self.user_id,
            'username': self.username,
            'difficulty': self.difficulty,
            'gameType': self.game_type,
            'startTime': iso_timestamp(self.start_time),
            'endTime': iso_timestamp(self.end_time),
            'status': self.status,
            'finalScore': self.final_score,
            'correctAnswers': self.correct_answers,
            'totalQuestions': self.total_questions,
            'createdAt': iso_timestamp(self.created_at),
        }

    def __repr__(self):
        return f'<GameSession {self.session_id} status={self.status}>'
