"""Flask extensions initialization module.

This module initializes all Flask extensions to prevent circular imports.
Extensions are initialized here and imported into app.py and other modules.
"""
import logging

from flask_socketio import SocketIO

logger = logging.getLogger(__name__)

# Initialize SocketIO without app binding
# Will be bound to app in create_app() function
socketio: SocketIO = SocketIO(
    cors_allowed_origins="*",
    async_mode='threading'
)


def broadcast_data_changed(entity: str, action: str) -> None:
    """Tell connected clients that ``entity`` was created, updated or deleted.

    Args:
        entity: 'books', 'members', 'issues', 'notifications', ...
        action: 'create', 'update', 'delete', 'import', 'restore', ...
    """
    if socketio.server is None:
        return
    try:
        socketio.emit('data_changed', {'entity': entity, 'action': action})
    except Exception as e:
        logger.warning('Could not broadcast %s/%s: %s', entity, action, e)
