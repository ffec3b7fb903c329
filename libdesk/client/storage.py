"""Local preference and token storage for the client."""
import json
import logging
import os
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_PREFERENCES_PATH = os.path.join(os.path.expanduser('~'), '.libdesk', 'preferences.json')

TOKEN_KEY = 'token'


class JsonPreferences:
    """Small key/value store kept in a JSON file.

    A missing or unreadable file behaves like empty preferences; the file
    is rewritten on every change.
    """

    def __init__(self, path: Optional[str] = None) -> None:
        self.path = path or DEFAULT_PREFERENCES_PATH

    def _load(self) -> Dict[str, Any]:
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning('Ignoring unreadable preferences file %s: %s', self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: Dict[str, Any]) -> None:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)

    def get(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)


class TokenStore:
    """Keeps the access token in the preferences file."""

    def __init__(self, preferences: Optional[JsonPreferences] = None) -> None:
        self.preferences = preferences or JsonPreferences()

    def read(self) -> Optional[str]:
        token = self.preferences.get(TOKEN_KEY)
        return token or None

    def write(self, token: str) -> None:
        self.preferences.set(TOKEN_KEY, token)

    def delete(self) -> None:
        self.preferences.remove(TOKEN_KEY)


class MemoryTokenStore:
    """In-process token store for tests and embedding."""

    def __init__(self, token: Optional[str] = None) -> None:
        self.token = token

    def read(self) -> Optional[str]:
        return self.token or None

    def write(self, token: str) -> None:
        self.token = token

    def delete(self) -> None:
        self.token = None
