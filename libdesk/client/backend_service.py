"""Start and stop a local API server for a desktop client."""
import logging
import os
import secrets
import socket
import subprocess
import sys
import time
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3000
CONNECT_TIMEOUT = 2.0
STARTUP_WAIT = 2.0


def is_backend_running(port: int = DEFAULT_PORT, host: str = 'localhost') -> bool:
    try:
        with socket.create_connection((host, port), timeout=CONNECT_TIMEOUT):
            return True
    except OSError:
        return False


def resolve_backend_path() -> str:
    """Directory the server should run in.

    Checked in order: a ``backend`` directory next to the running
    executable, ``../backend`` relative to the current directory, and
    finally the project root that contains the ``libdesk`` package.
    """
    bundled = os.path.join(os.path.dirname(sys.executable), 'backend')
    if os.path.isdir(bundled):
        return bundled
    sibling = os.path.normpath(os.path.join(os.getcwd(), '..', 'backend'))
    if os.path.isdir(sibling):
        return sibling
    package_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    return os.path.dirname(package_dir)


def default_env_contents(backend_path: str, port: int = DEFAULT_PORT) -> str:
    return (
        f"DATABASE_PATH={os.path.join(backend_path, 'data', 'library.db')}\n"
        f'JWT_SECRET={secrets.token_hex(20)}\n'
        f'PORT={port}\n'
        'LIBDESK_ENV=production\n'
    )


def ensure_env_file(backend_path: str, port: int = DEFAULT_PORT) -> str:
    """Create ``<backend_path>/.env`` with defaults when it is missing."""
    env_path = os.path.join(backend_path, '.env')
    if not os.path.exists(env_path):
        logger.info('Creating default .env file at %s', env_path)
        with open(env_path, 'w', encoding='utf-8') as f:
            f.write(default_env_contents(backend_path, port))
    return env_path


class BackendService:
    """Owns at most one server process started by this client."""

    def __init__(self, port: int = DEFAULT_PORT, host: str = 'localhost',
                 startup_wait: float = STARTUP_WAIT) -> None:
        self.port = port
        self.host = host
        self.startup_wait = startup_wait
        self.process: Optional[subprocess.Popen] = None
        self.is_starting = False
        self.is_running = False

    def start_backend(self, backend_path: Optional[str] = None) -> bool:
        """Start the server unless it already answers on the port.

        Returns:
            True when the server is reachable afterwards.
        """
        if self.is_starting:
            logger.info('Backend is already starting')
            return False
        if is_backend_running(self.port, self.host):
            logger.info('Backend is already running on port %d', self.port)
            self.is_running = True
            return True

        self.is_starting = True
        try:
            path = backend_path or resolve_backend_path()
            if not os.path.isdir(path):
                logger.error('Backend directory not found: %s', path)
                return False
            ensure_env_file(path, self.port)

            logger.info('Starting backend from %s', path)
            self.process = subprocess.Popen(
                [sys.executable, '-m', 'libdesk'],
                cwd=path,
                env={**os.environ, 'LIBDESK_ENV': 'production', 'PORT': str(self.port)},
            )
            time.sleep(self.startup_wait)

            running = is_backend_running(self.port, self.host)
            if running:
                logger.info('Backend started (PID: %s)', self.process.pid)
            else:
                logger.error('Backend failed to start')
            self.is_running = running
            return running
        except OSError as e:
            logger.error('Error starting backend: %s', e)
            return False
        finally:
            self.is_starting = False

    def stop_backend(self, timeout: float = 5.0) -> None:
        if self.process is None:
            return
        logger.info('Stopping backend (PID: %s)', self.process.pid)
        self.process.terminate()
        try:
            self.process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            self.process.kill()
            self.process.wait()
        self.process = None
        self.is_running = False
