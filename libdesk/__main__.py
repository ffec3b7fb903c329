"""Run the API server: ``python -m libdesk``."""
from libdesk.app import create_app
from libdesk.extensions import socketio


def main() -> None:
    app = create_app()
    socketio.run(app, host=app.config['HOST'], port=app.config['PORT'],
                 allow_unsafe_werkzeug=True)


if __name__ == '__main__':
    main()
