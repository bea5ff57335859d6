import logging
import os

from flask import Flask, jsonify, request

from loan_schedule.batch import compute_batch
from loan_schedule.config import limits_from_env
from loan_schedule.engine import compute_schedule
from loan_schedule.errors import LoanScheduleError, ValidationError
from loan_schedule.export import batch_to_dict, schedule_to_dict
from loan_schedule.loader import groups_from_document, schedule_request

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.secret_key = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
app.config["ENGINE_LIMITS"] = limits_from_env()


def parse_form_list(value: str) -> list[str]:
    """Parse a comma or whitespace separated list of entries from a form field.

    Returns a list of trimmed strings, skipping any empty entries.
    """
    if not value:
        return []
    # split by comma or newline
    parts = [p.strip() for p in value.replace("\n", ",").split(",")]
    return [p for p in parts if p]


def _form_to_payload(form) -> dict:
    """Turn a form post into the JSON shape the loader expects.

    Payments come as one ``DATE:AMOUNT:KIND`` entry per line or comma.
    """
    payload = {key: value for key, value in form.items() if key != "payments"}
    payments = []
    for item in parse_form_list(form.get("payments", "")):
        parts = item.split(":")
        if len(parts) != 3:
            raise ValidationError(f"Payment must be in YYYY-MM-DD:AMOUNT:KIND format; got {item}")
        payments.append({"date": parts[0], "amount": parts[1], "kind": parts[2]})
    payload["payments"] = payments
    return payload


def _request_payload() -> dict:
    if request.is_json:
        data = request.get_json(silent=True)
        if data is None:
            raise ValidationError("Request body is not valid JSON")
        return data
    return _form_to_payload(request.form)


def _error_response(exc: LoanScheduleError):
    body = {"error": str(exc), "type": type(exc).__name__}
    if exc.group_index is not None:
        body["group_index"] = exc.group_index
        body["group_name"] = exc.group_name
    return jsonify(body), 400


@app.errorhandler(LoanScheduleError)
def handle_schedule_error(exc: LoanScheduleError):
    logger.warning("Rejected request: %s", exc)
    return _error_response(exc)


@app.get("/")
def index():
    return jsonify(
        {
            "service": "loan-schedule",
            "endpoints": ["POST /api/schedule", "POST /api/batch"],
        }
    )


@app.post("/api/schedule")
def schedule():
    """Compute the schedule of one loan."""
    group = schedule_request(_request_payload())
    result = compute_schedule(group.terms, group.events, app.config["ENGINE_LIMITS"])
    data = schedule_to_dict(result)
    data["name"] = group.name
    return jsonify(data)


@app.post("/api/batch")
def batch():
    """Compute a batch of loans; failed loans are listed, not fatal."""
    groups = groups_from_document(_request_payload())
    report = compute_batch(groups, app.config["ENGINE_LIMITS"])
    include = request.args.get("schedules", "1") != "0"
    return jsonify(batch_to_dict(report, include_schedules=include))


if __name__ == "__main__":
    print("Starting loan schedule API...")
    app.run(host="0.0.0.0", port=8710, debug=os.environ.get("FLASK_DEBUG") == "1")
