"""Puzzle sources for the game loop.

Main-loop questions come from the third-party heart API, which answers
``{"question": <image url>, "solution": <int>}``. Mini-game questions are
drawn from a small built-in bank of pearl strings.
"""

import logging
import random
from dataclasses import dataclass
from typing import Optional

import httpx

from heart_hunt.errors import PuzzleUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_HEART_API_URL = 'https://marcconrad.com/uob/heart/api.php'
DEFAULT_REWARD = 10


@dataclass(frozen=True)
class Puzzle:
    question: str
    solution: int
    reward: int = DEFAULT_REWARD


class HeartApiClient:
    """Fetches one counting puzzle per call from the heart API."""

    def __init__(self, base_url: str = DEFAULT_HEART_API_URL, timeout: float = 5.0,
                 client: Optional[httpx.Client] = None):
        self.base_url = base_url
        self.timeout = timeout
        self._client = client

    def fetch(self) -> Puzzle:
        try:
            if self._client is not None:
                response = self._client.get(self.base_url, timeout=self.timeout)
            else:
                response = httpx.get(self.base_url, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
            puzzle = Puzzle(
                question=str(data['question']),
                solution=int(data['solution']),
                reward=int(data.get('pearls') or DEFAULT_REWARD),
            )
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as exc:
            logger.error(f"Heart API request failed: {exc}")
            raise PuzzleUnavailableError('Failed to load question', cause=exc)
        return puzzle


PEARL = '\U0001F48E'

MINI_GAME_PUZZLES = (
    Puzzle('', 0, 5),
    Puzzle(PEARL * 1, 1, 5),
    Puzzle(PEARL * 2, 2, 10),
    Puzzle(PEARL * 3, 3, 10),
    Puzzle(PEARL * 4, 4, 10),
    Puzzle(PEARL * 5, 5, 15),
    Puzzle(PEARL * 6, 6, 20),
    Puzzle(PEARL * 7, 7, 25),
    Puzzle(PEARL * 8, 8, 30),
)


class MiniGameBank:
    """Random pick from the pearl-counting puzzles."""

    def __init__(self, rng: Optional[random.Random] = None, puzzles=MINI_GAME_PUZZLES):
        self.rng = rng or random.Random()
        self.puzzles = tuple(puzzles)

    def fetch(self) -> Puzzle:
        return self.rng.choice(self.puzzles)
