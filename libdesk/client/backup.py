"""Save server backups to disk and restore them from a file."""
import json
import logging
from datetime import date
from typing import Any, Dict, Optional

from libdesk.client.api_service import ApiService

logger = logging.getLogger(__name__)


def default_backup_filename(today: Optional[date] = None) -> str:
    return f'library_backup_{(today or date.today()).isoformat()}.json'


def save_backup(api: ApiService, path: str) -> Dict[str, Any]:
    """Download a backup from the server and write it to ``path``."""
    backup = api.get_backup()
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(backup, f, indent=2, ensure_ascii=False)
    logger.info('Backup saved to %s', path)
    return backup


def restore_backup_file(api: ApiService, path: str,
                        clear_existing: bool = True) -> Dict[str, Any]:
    """Restore the server from a backup file written by ``save_backup``.

    Raises:
        ValueError: The file is not a JSON backup document.
        ApiError: The server rejected the restore.
    """
    with open(path, 'r', encoding='utf-8') as f:
        try:
            backup = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f'Invalid backup file: {e}') from e
    if not isinstance(backup, dict):
        raise ValueError('Invalid backup file: expected a JSON object')
    result = api.restore_backup(backup, clear_existing=clear_existing)
    logger.info('Backup restored from %s', path)
    return result
