# payroll_api/common/http.py
from datetime import date, time
from typing import Optional

from flask import jsonify, request


def ok(data=None, status=200, **meta):
    payload = {"success": True, "data": data}
    if meta:
        payload["meta"] = meta
    return jsonify(payload), status


def fail(message="Bad Request", status=400, code=None, detail=None, errors=None):
    err = {"message": message}
    if code: err["code"] = code
    if detail: err["detail"] = detail
    if errors: err["errors"] = errors
    return jsonify({"success": False, "error": err}), status


def page_args():
    try:
        page = max(int(request.args.get("page", 1)), 1)
        size = min(max(int(request.args.get("size", 20)), 1), 200)
    except (TypeError, ValueError):
        page, size = 1, 20
    return page, size


def as_int(v) -> Optional[int]:
    if v is None or v == "":
        return None
    try:
        return int(v)
    except (TypeError, ValueError):
        return None


def as_date(s) -> Optional[date]:
    if not s:
        return None
    try:
        return date.fromisoformat(str(s))
    except ValueError:
        return None


def as_time(s) -> Optional[time]:
    if not s:
        return None
    try:
        return time.fromisoformat(str(s))
    except ValueError:
        return None
