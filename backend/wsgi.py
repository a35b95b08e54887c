# Overview: WSGI entry point (FLASK_APP=wsgi.py).

from weblarek import create_app

app = create_app()
