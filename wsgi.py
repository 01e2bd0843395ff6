# wsgi.py
"""
WSGI entry point for production deployment

    gunicorn wsgi:application
"""

from app import create_app

# Production WSGI application
application = create_app()

if __name__ == '__main__':
    application.run()
