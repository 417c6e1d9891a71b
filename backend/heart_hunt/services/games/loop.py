"""Per-question game loop with the nested second-chance mini-game.

The loop state is always exactly one of two tagged shapes:

- ``MainLoop``: the counting game proper (loading, playing, correct, offer,
  game_over).
- ``MiniGameLoop``: a pearl-counting detour entered from an offer after a
  wrong answer or a timeout. It remembers the main state to return to and
  how many second chances were left when it started.

Time comes from an injected monotonic clock, so countdowns can be driven
deterministically. Results leave the loop only through ``finalize``, which
runs at most once per attempt and hands one score record and one session
update to the recorder.
"""

import enum
import logging
import math
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Protocol, Union

from heart_hunt.errors import InvalidTransitionError, ValidationError
from heart_hunt.models import DIFFICULTIES
from .fields import as_int
from .puzzles import Puzzle

logger = logging.getLogger(__name__)

DIFFICULTY_DURATIONS = {'Easy': 60, 'Medium': 40, 'Hard': 30, 'Expert': 15}
MINI_GAME_DURATION = 20
MINI_GAME_CHANCES = 3


class Phase(str, enum.Enum):
    LOADING = 'loading'
    PLAYING = 'playing'
    CORRECT = 'correct'
    WRONG = 'wrong'
    TIMEOUT = 'timeout'
    OFFER = 'offer'
    GAME_OVER = 'game_over'


@dataclass
class MainLoop:
    phase: Phase = Phase.LOADING
    question: Optional[Puzzle] = None
    deadline: Optional[float] = None


@dataclass
class MiniGameLoop:
    return_state: MainLoop
    credits_remaining: int
    phase: Phase = Phase.PLAYING
    question: Optional[Puzzle] = None
    deadline: Optional[float] = None


LoopState = Union[MainLoop, MiniGameLoop]


@dataclass(frozen=True)
class PlayerContext:
    """Who is playing; passed in rather than read from ambient storage."""
    user_id: str
    username: str


class PuzzleSource(Protocol):
    def fetch(self) -> Puzzle: ...


class Recorder(Protocol):
    def start_session(self, payload: Dict[str, Any]) -> Optional[str]: ...

    def update_session(self, session_id: str, payload: Dict[str, Any]) -> bool: ...

    def save_score(self, payload: Dict[str, Any]) -> bool: ...


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z')


@dataclass
class Progress:
    score: int = 0
    correct_answers: int = 0
    total_questions: int = 0
    credits: int = MINI_GAME_CHANCES
    started_at: float = 0.0
    session_id: Optional[str] = None
    finalized: bool = False
    result: Optional[Dict[str, Any]] = field(default=None, repr=False)


class GameLoop:
    def __init__(self, player: PlayerContext, difficulty: str, puzzles: PuzzleSource,
                 mini_games: PuzzleSource, recorder: Recorder,
                 clock: Callable[[], float] = time.monotonic,
                 chances: int = MINI_GAME_CHANCES,
                 durations: Optional[Dict[str, int]] = None,
                 mini_game_duration: int = MINI_GAME_DURATION):
        if difficulty not in DIFFICULTIES:
            raise ValidationError(f'difficulty must be one of: {", ".join(DIFFICULTIES)}')
        self.player = player
        self.difficulty = difficulty
        self.puzzles = puzzles
        self.mini_games = mini_games
        self.recorder = recorder
        self.clock = clock
        self.chances = chances
        self.durations = dict(DIFFICULTY_DURATIONS, **(durations or {}))
        self.mini_game_duration = mini_game_duration
        self.state: LoopState = MainLoop()
        self.progress = Progress(credits=chances)
        self.last_outcome: Optional[Phase] = None
        self._started = False

    # -- properties -------------------------------------------------------

    @property
    def in_mini_game(self) -> bool:
        return isinstance(self.state, MiniGameLoop)

    @property
    def phase(self) -> Phase:
        return self.state.phase

    @property
    def question_duration(self) -> int:
        if self.in_mini_game:
            return self.mini_game_duration
        return self.durations[self.difficulty]

    def time_left(self) -> int:
        if self.state.deadline is None:
            return 0
        return max(0, math.ceil(self.state.deadline - self.clock()))

    # -- lifecycle --------------------------------------------------------

    def start(self) -> Puzzle:
        """Open a session and load the first question."""
        if self._started:
            raise InvalidTransitionError('Game already started')
        self._started = True
        self.progress.started_at = self.clock()
        self.progress.session_id = self.recorder.start_session({
            'userId': self.player.user_id,
            'username': self.player.username,
            'difficulty': self.difficulty,
            'gameType': 'main',
            'startTime': _now_iso(),
            'status': 'active',
        })
        return self.next_question()

    def next_question(self) -> Puzzle:
        state = self.state
        if not isinstance(state, MainLoop) or state.phase not in (Phase.LOADING, Phase.CORRECT):
            raise InvalidTransitionError(f'Cannot load a question while {self._describe()}')
        self.state = MainLoop(phase=Phase.LOADING)
        puzzle = self.puzzles.fetch()
        self.state = MainLoop(
            phase=Phase.PLAYING,
            question=puzzle,
            deadline=self.clock() + self.durations[self.difficulty],
        )
        self.progress.total_questions += 1
        return puzzle

    def submit(self, answer: Optional[int]) -> Phase:
        """Resolve the current question; returns CORRECT, WRONG or TIMEOUT."""
        if self.state.phase != Phase.PLAYING:
            raise InvalidTransitionError(f'Cannot answer while {self._describe()}')
        if answer is None:
            raise ValidationError('An answer is required')
        answer = as_int({'answer': answer}, 'answer', minimum=None)
        if self._expired():
            return self._resolve(Phase.TIMEOUT)
        if answer == self.state.question.solution:
            return self._resolve(Phase.CORRECT)
        return self._resolve(Phase.WRONG)

    def tick(self) -> int:
        """Advance the countdown; fires the timeout once the deadline passes."""
        if self.state.phase == Phase.PLAYING and self._expired():
            self._resolve(Phase.TIMEOUT)
        return self.time_left()

    def accept_second_chance(self) -> Puzzle:
        state = self.state
        if not isinstance(state, MainLoop) or state.phase != Phase.OFFER:
            raise InvalidTransitionError(f'No second chance on offer while {self._describe()}')
        puzzle = self.mini_games.fetch()
        self.state = MiniGameLoop(
            return_state=MainLoop(phase=Phase.LOADING),
            credits_remaining=self.progress.credits,
            phase=Phase.PLAYING,
            question=puzzle,
            deadline=self.clock() + self.mini_game_duration,
        )
        return puzzle

    def decline_second_chance(self) -> Dict[str, Any]:
        if not isinstance(self.state, MainLoop) or self.state.phase != Phase.OFFER:
            raise InvalidTransitionError(f'No second chance on offer while {self._describe()}')
        return self.finalize()

    def quit(self) -> Optional[Dict[str, Any]]:
        return self.finalize()

    def close(self) -> Optional[Dict[str, Any]]:
        """Teardown: cancel the countdown and persist a game still in progress."""
        self.state = replace(self.state, deadline=None)
        if self.progress.finalized:
            return None
        return self.finalize()

    def restart(self) -> Puzzle:
        if self._started and not self.progress.finalized:
            self.finalize()
        self.state = MainLoop()
        self.progress = Progress(credits=self.chances)
        self.last_outcome = None
        self._started = False
        return self.start()

    def finalize(self) -> Optional[Dict[str, Any]]:
        """Persist the attempt once; later calls return the first result."""
        progress = self.progress
        if progress.finalized or not self._started:
            return progress.result
        progress.finalized = True
        self.state = MainLoop(phase=Phase.GAME_OVER)

        time_spent = int(self.clock() - progress.started_at)
        result = {
            'userId': self.player.user_id,
            'username': self.player.username,
            'score': progress.score,
            'difficulty': self.difficulty,
            'status': 'completed',
            'correctAnswers': progress.correct_answers,
            'totalQuestions': progress.total_questions,
            'gameType': 'main',
            'sessionId': progress.session_id,
            'timeSpent': time_spent,
        }
        progress.result = result
        logger.info(
            f"Game over for {self.player.username}: score={progress.score} "
            f"correct={progress.correct_answers}/{progress.total_questions}"
        )
        self.recorder.save_score(result)
        if progress.session_id:
            self.recorder.update_session(progress.session_id, {
                'endTime': _now_iso(),
                'status': 'completed',
                'finalScore': progress.score,
                'correctAnswers': progress.correct_answers,
                'totalQuestions': progress.total_questions,
            })
        return result

    # -- internals --------------------------------------------------------

    def _expired(self) -> bool:
        deadline = self.state.deadline
        return deadline is not None and self.clock() >= deadline

    def _resolve(self, outcome: Phase) -> Phase:
        self.last_outcome = outcome
        if isinstance(self.state, MiniGameLoop):
            self._resolve_mini_game(outcome)
        else:
            self._resolve_main(outcome)
        return outcome

    def _resolve_main(self, outcome: Phase) -> None:
        question = self.state.question
        if outcome == Phase.CORRECT:
            self.progress.score += question.reward
            self.progress.correct_answers += 1
            self.state = MainLoop(phase=Phase.CORRECT, question=question)
            return
        if self.progress.credits > 0:
            self.state = MainLoop(phase=Phase.OFFER, question=question)
        else:
            self.finalize()

    def _resolve_mini_game(self, outcome: Phase) -> None:
        state = self.state
        self.progress.credits -= 1
        if outcome == Phase.CORRECT:
            self.progress.score += state.question.reward
            self.state = replace(state.return_state, phase=Phase.LOADING)
            return
        if self.progress.credits <= 0:
            self.finalize()
        else:
            self.state = MainLoop(phase=Phase.OFFER)

    def _describe(self) -> str:
        where = 'mini-game' if self.in_mini_game else 'main game'
        return f'{self.state.phase.value} ({where})'
