"""Helpers for the `{success, data, error}` JSON envelope."""

from __future__ import annotations

from typing import Any

from flask import Response, jsonify


def ok(data: Any, status_code: int = 200) -> tuple[Response, int]:
    return jsonify({"success": True, "data": data, "error": None}), status_code


def fail(code: str, message: str, status_code: int, details: Any | None = None) -> tuple[Response, int]:
    """Error response. `code` is the machine-readable AppError code."""

    error = {"code": code, "message": message, "details": details}
    return jsonify({"success": False, "data": None, "error": error}), status_code
