import os
from datetime import date

from flask import Flask, jsonify, request

from loan_schedule.data_models import CalculationMethod, LoanTerms
from loan_schedule.engine import generate_schedule, level_installment
from loan_schedule.exceptions import LoanScheduleError
from loan_schedule.formatter import (
    schedule_to_dicts,
    summary_to_dict,
    to_display_table,
    to_persistence_rows,
)
from loan_schedule.logging_config import setup_logging
from loan_schedule.totals import summarize
from loan_schedule.utils import parse_date, percent_to_fraction
from loan_schedule_web.schedule_store import create_store_from_env

app = Flask(__name__)
app.config["DEFAULT_LOCALE"] = os.environ.get("LOAN_SCHEDULE_LOCALE", "sw-TZ")
app.config["LEGACY_METHOD_FALLBACK"] = os.environ.get("LOAN_SCHEDULE_LEGACY_METHOD_FALLBACK", "0") == "1"
app.config["LOG_LEVEL"] = os.environ.get("LOAN_SCHEDULE_LOG_LEVEL", "INFO")

setup_logging(app.config["LOG_LEVEL"], "loan_schedule")
logger = setup_logging(app.config["LOG_LEVEL"], "loan_schedule_web")

schedule_store = create_store_from_env(os.environ.get("LOAN_SCHEDULE_DATABASE_URL"))


def _request_fields() -> dict:
    payload = request.get_json(silent=True)
    if isinstance(payload, dict):
        return payload
    return request.form.to_dict()


def _parse_term(value) -> int:
    """Whole months only: an integer, or a string of digits from a form."""
    if value is None or value == "":
        return 0
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise ValueError(f"Invalid term_months: {value!r}")


def _fields_to_terms(fields: dict) -> LoanTerms:
    """Build ``LoanTerms`` from the fields of a loan application.

    Rates arrive as monthly percentages, the way loan officers enter them. A
    missing disbursement date means today; it is resolved here so the engine
    itself never depends on the clock.
    """
    raw_date = str(fields.get("disbursement_date") or "").strip()
    disbursement_date = parse_date(raw_date) if raw_date else date.today()
    term_months = _parse_term(fields.get("term_months"))
    method = CalculationMethod.parse(
        fields.get("calculation_method"), legacy=app.config["LEGACY_METHOD_FALLBACK"]
    )
    return LoanTerms(
        principal=str(fields.get("principal") or "0"),
        monthly_interest_rate=percent_to_fraction(str(fields.get("interest_rate") or "0")),
        monthly_management_fee_rate=percent_to_fraction(str(fields.get("management_fee_rate") or "0")),
        term_months=term_months,
        disbursement_date=disbursement_date,
        calculation_method=method,
    )


def _serialize_rows(rows: list) -> list:
    serialized = []
    for row in rows:
        item = dict(row)
        item["due_date"] = row["due_date"].isoformat()
        for key in (
            "principal_portion",
            "interest_portion",
            "management_fee_portion",
            "total_payment",
            "remaining_balance",
        ):
            item[key] = str(row[key])
        serialized.append(item)
    return serialized


@app.errorhandler(LoanScheduleError)
@app.errorhandler(ValueError)
def handle_invalid_terms(exc):
    return jsonify({"error": str(exc)}), 400


@app.post("/api/schedule/preview")
def preview_schedule():
    terms = _fields_to_terms(_request_fields())
    schedule = generate_schedule(terms)
    return jsonify(
        {
            "ready": bool(schedule),
            "calculation_method": terms.calculation_method.value,
            "level_installment": str(level_installment(terms)),
            "summary": summary_to_dict(summarize(schedule)),
            "schedule": schedule_to_dicts(schedule),
        }
    )


@app.post("/api/loans/<loan_id>/schedule")
def persist_schedule(loan_id: str):
    terms = _fields_to_terms(_request_fields())
    schedule = generate_schedule(terms)
    if not schedule:
        logger.warning("No repayment schedule generated", extra={"loan_id": loan_id})
        return jsonify({"error": "Loan terms are incomplete; no schedule generated"}), 422
    stored = schedule_store.replace_schedule(loan_id, to_persistence_rows(schedule, loan_id))
    return jsonify(
        {
            "loan_id": loan_id,
            "installments": stored,
            "summary": summary_to_dict(summarize(schedule)),
        }
    ), 201


@app.get("/api/loans/<loan_id>/schedule")
def get_schedule(loan_id: str):
    rows = schedule_store.get_schedule(loan_id)
    if not rows:
        return jsonify({"error": f"No schedule stored for loan {loan_id}"}), 404
    return jsonify({"loan_id": loan_id, "schedule": _serialize_rows(rows)})


@app.post("/api/loans/<loan_id>/schedule/<int:payment_number>/paid")
def mark_installment_paid(loan_id: str, payment_number: int):
    if not schedule_store.mark_paid(loan_id, payment_number):
        return jsonify({"error": f"Installment {payment_number} not found for loan {loan_id}"}), 404
    logger.info("Installment %d marked paid", payment_number, extra={"loan_id": loan_id})
    return jsonify({"loan_id": loan_id, "payment_number": payment_number, "is_paid": True})


@app.post("/api/contract/schedule-table")
def contract_schedule_table():
    fields = _request_fields()
    terms = _fields_to_terms(fields)
    schedule = generate_schedule(terms)
    locale = fields.get("locale") or app.config["DEFAULT_LOCALE"]
    return to_display_table(schedule, locale), 200, {"Content-Type": "text/html; charset=utf-8"}


if __name__ == "__main__":
    logger.info("Starting repayment schedule service")
    app.run(host="0.0.0.0", port=8710, debug=True)
