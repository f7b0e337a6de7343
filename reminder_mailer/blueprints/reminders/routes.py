import json

from flask import current_app, jsonify

from . import bp
from reminder_mailer.services.dispatcher import get_dispatcher

# Schedulers call with whatever verb they like; the request itself is never read.
# OPTIONS is listed so Flask does not answer it on the view's behalf.
DISPATCH_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


@bp.route("/dispatch", methods=DISPATCH_METHODS)
def dispatch():
    """Send every pending report reminder in the current batch."""
    try:
        payload = get_dispatcher(current_app._get_current_object()).run()
    except Exception as e:
        current_app.logger.exception("reminder dispatch failed")
        return jsonify({"success": False, "error": str(e) or type(e).__name__}), 500

    current_app.logger.info(json.dumps({
        "event": "reminder_dispatch_request",
        "processed": payload.get("processed", 0),
        "stats": payload.get("stats", {}),
    }))
    return jsonify(payload), 200
