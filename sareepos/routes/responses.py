# Overview: JSON envelopes shared by all blueprints.

from flask import jsonify


def success(data=None, status_code: int = 200, message: str | None = None, **extra):
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    body.update(extra)
    return jsonify(body), status_code


def failure(error: str, status_code: int, details=None, **extra):
    body = {"success": False, "error": error}
    if details is not None:
        body["details"] = details
    body.update(extra)
    return jsonify(body), status_code
