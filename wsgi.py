# wsgi.py -- production entry point: gunicorn wsgi:app
from werkzeug.middleware.proxy_fix import ProxyFix
from contractdesk import create_app

app = create_app()
# one reverse proxy in front; trust its forwarded scheme, client ip and host
app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_for=1, x_host=1)
