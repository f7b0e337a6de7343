from flask import Blueprint

bp = Blueprint("reminders", __name__)

from . import routes  # noqa: E402,F401 (import after bp to avoid circulars)
