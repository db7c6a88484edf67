# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .validation import ValidationError, require_actor_id

ACTOR_HEADER = "X-Actor-Id"


def require_actor(f):
    """
    Require the authenticated actor id forwarded by the upstream auth layer.

    Sets g.actor_id. Returns 400 when the header is missing or is not a
    positive integer; there is no default actor.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = (request.headers.get(ACTOR_HEADER) or "").strip()

        if not raw:
            return jsonify({"error": f"{ACTOR_HEADER} header required"}), 400

        # Only plain ASCII digits; int() rejects superscripts and the like
        if not (raw.isascii() and raw.isdigit()):
            return jsonify({"error": f"{ACTOR_HEADER} must be a positive integer"}), 400

        try:
            g.actor_id = require_actor_id(raw)
        except ValidationError:
            return jsonify({"error": f"{ACTOR_HEADER} must be a positive integer"}), 400

        return f(*args, **kwargs)

    return decorated_function
