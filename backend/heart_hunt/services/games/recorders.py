"""Where the game loop sends its results.

Both recorders log persistence failures and swallow them; a player is never
interrupted because a score could not be stored.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from heart_hunt.errors import HeartHuntError
from . import scores, sessions

logger = logging.getLogger(__name__)


class ServiceRecorder:
    """Writes straight through the score and session services.

    Must be used inside a Flask application context.
    """

    def start_session(self, payload: Dict[str, Any]) -> Optional[str]:
        try:
            return sessions.start_session(payload).session_id
        except HeartHuntError as exc:
            logger.error(f"Error starting game session: {exc.message}")
            return None

    def update_session(self, session_id: str, payload: Dict[str, Any]) -> bool:
        try:
            sessions.update_session(session_id, payload)
        except HeartHuntError as exc:
            logger.error(f"Error updating game session {session_id}: {exc.message}")
            return False
        return True

    def save_score(self, payload: Dict[str, Any]) -> bool:
        try:
            scores.save_score(payload)
        except HeartHuntError as exc:
            logger.error(f"Error saving score: {exc.message}")
            return False
        return True


class ApiRecorder:
    """Posts results to a running Heart Hunt API.

    The API keeps the login in a session cookie, so one ``httpx.Client`` is
    reused for the login and every later call.
    """

    def __init__(self, base_url: str, client: Optional[httpx.Client] = None, timeout: float = 5.0):
        self.client = client or httpx.Client(base_url=base_url.rstrip('/'), timeout=timeout)

    def login(self, identifier: str, password: str) -> Optional[Dict[str, Any]]:
        key = 'email' if '@' in identifier else 'username'
        data = self._send('POST', '/auth/login', {key: identifier, 'password': password})
        return data.get('user') if data else None

    def start_session(self, payload: Dict[str, Any]) -> Optional[str]:
        data = self._send('POST', '/games/save-session', payload)
        return data.get('sessionId') if data else None

    def update_session(self, session_id: str, payload: Dict[str, Any]) -> bool:
        return self._send('PUT', f'/games/session/{session_id}', payload) is not None

    def save_score(self, payload: Dict[str, Any]) -> bool:
        return self._send('POST', '/games/save-score', payload) is not None

    def close(self) -> None:
        self.client.close()

    def _send(self, method: str, path: str, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        try:
            response = self.client.request(method, path, json=payload)
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error(f"API error on {method} {path}: {exc}")
            return None
