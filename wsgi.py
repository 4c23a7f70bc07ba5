"""
Gunicorn entry point: ``gunicorn wsgi:app``.

The Flask app is built on the first request rather than at import, so the
config name and secrets are read from the environment the worker actually
runs in. ``REFEVO_CONFIG`` picks the config; ``FLASK_ENV`` is honoured when
it is unset.
"""
import os

_app = None


def config_name():
    name = os.environ.get('REFEVO_CONFIG') or os.environ.get('FLASK_ENV') or 'production'
    from refevo.config import config
    return name if name in config else 'production'


def get_app():
    global _app
    if _app is None:
        from refevo import create_app
        _app = create_app(config_name())
    return _app


def app(environ, start_response):
    return get_app()(environ, start_response)


if __name__ == '__main__':
    get_app().run()
