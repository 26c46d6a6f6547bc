# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

CONTEXT_HEADERS = {
    "company_id": "X-Company-Id",
    "shop_id": "X-Shop-Id",
    "user_id": "X-User-Id",
}


def require_context(f):
    """
    Establish the caller context for a request.

    Sets g.company_id, g.shop_id and g.user_id from the X-Company-Id,
    X-Shop-Id and X-User-Id headers. Identity itself is established upstream;
    this only refuses requests that arrive without it (401).
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        missing = []
        for attr, header in CONTEXT_HEADERS.items():
            value = (request.headers.get(header) or "").strip()
            if not value:
                missing.append(header)
            setattr(g, attr, value)

        if missing:
            return jsonify({"error": "Caller context required", "details": {"missing_headers": missing}}), 401

        return f(*args, **kwargs)

    return decorated_function
