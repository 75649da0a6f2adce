"""
WSGI entry point.

Usage:
    gunicorn "app:application"

    export FLASK_ENV=development
    python app.py
"""

import os

from user_requests.app import create_app

application = create_app(os.getenv('FLASK_ENV'))


if __name__ == '__main__':
    application.run(
        host=os.getenv('FLASK_HOST', '127.0.0.1'),
        port=int(os.getenv('FLASK_PORT', '5000')),
        debug=application.config.get('DEBUG', False)
    )
