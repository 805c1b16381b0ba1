from __future__ import annotations

from flask import Flask, jsonify, request

from ..container import Container
from ..core.enums import ErrorKind
from ..core.exceptions import ValidationError
from .model import BatchRequest
from .repository import CallerContext

ACCESS_TOKEN_COOKIE = "sb-access-token"


def _status_for(kind: ErrorKind | None) -> int:
    return 400 if kind is ErrorKind.VALIDATION else 500


def register(app: Flask, container: Container) -> None:
    def _caller() -> CallerContext:
        header = request.headers.get("Authorization", "")
        if header.lower().startswith("bearer "):
            return CallerContext(access_token=header[7:].strip() or None)
        return CallerContext(access_token=request.cookies.get(ACCESS_TOKEN_COOKIE))

    @app.route("/attendance/save", methods=["POST"], endpoint="attendance_save")
    def attendance_save():
        """Apply one batch of attendance upserts and deletions for a meeting."""
        payload = request.get_json(silent=True)
        try:
            batch = BatchRequest.from_payload(payload)
        except ValidationError as e:
            return jsonify({"success": False, "error": str(e), "errorKind": ErrorKind.VALIDATION.value}), 400

        result = container.attendance_gateway.apply_batch(batch, caller=_caller())
        if not result.success:
            return jsonify(result.to_dict()), _status_for(result.error_kind)
        return jsonify(result.to_dict()), 200

    @app.route("/attendance/<meeting_id>", methods=["GET"], endpoint="attendance_rows")
    def attendance_rows(meeting_id: str):
        """Persisted attendance rows for one meeting, used to hydrate the ledger."""
        result = container.attendance_gateway.list_attendance(meeting_id, caller=_caller())
        if not result.ok:
            return jsonify({
                "success": False,
                "error": result.error,
                "errorKind": result.error_kind.value if result.error_kind else None,
            }), _status_for(result.error_kind)
        return jsonify({"success": True, "records": [r.to_dict() for r in result.value]}), 200
