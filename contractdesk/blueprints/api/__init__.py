from flask import Blueprint

api_bp = Blueprint("api", __name__)

# Import route modules to register their endpoints
from . import quotations  # noqa: E402,F401
from . import projects    # noqa: E402,F401
from . import invoices    # noqa: E402,F401
from . import audit       # noqa: E402,F401
from . import dashboard   # noqa: E402,F401
