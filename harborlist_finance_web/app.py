"""JSON API for the marketplace's finance calculator.

Exposes loan calculation, scenario comparison and suggested rates, and lets
signed-in buyers save, list, share and delete calculations. The caller's
identity arrives in the ``X-User-Id`` header set by the gateway in front of
this service. Configuration comes from the environment (see ``create_app``).
"""

import logging
import os
import sys
from typing import Any, Dict, List, Mapping, Optional
from uuid import uuid4

from flask import Blueprint, Flask, current_app, g, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from harborlist_finance.data_models import FinanceCalculation, LenderInfo, LoanParameters
from harborlist_finance.engine import calculate_loan, calculate_scenarios, suggested_interest_rates
from harborlist_finance.utils import decimal_from_str, generate_id, int_from_value, now_millis
from harborlist_finance.validation import (
    ValidationError,
    require_fields,
    sanitize_string,
    validate_loan_parameters,
)
from harborlist_finance_web.calculation_store import CalculationStore, create_store_from_env

logger = logging.getLogger(__name__)

PARAM_FIELDS = ["boatPrice", "downPayment", "interestRate", "termMonths"]
SCENARIO_FIELD_NAMES = {
    "boatPrice": "boat_price",
    "downPayment": "down_payment",
    "interestRate": "interest_rate",
    "termMonths": "term_months",
    "name": "name",
}

finance = Blueprint("finance", __name__)


class ApiError(Exception):
    """An error with an HTTP status and a machine-readable code."""

    def __init__(self, status: int, code: str, message: str) -> None:
        super().__init__(message)
        self.status = status
        self.code = code
        self.message = message


def _error_response(status: int, code: str, message: str):
    body = {"error": {"code": code, "message": message, "requestId": g.get("request_id")}}
    return jsonify(body), status


def _store() -> CalculationStore:
    return current_app.extensions["calculation_store"]


def _json_body() -> Dict[str, Any]:
    body = request.get_json(silent=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    return body


def _current_user() -> str:
    user_id = request.headers.get("X-User-Id", "").strip()
    if not user_id:
        raise ApiError(401, "UNAUTHORIZED", "User not authenticated")
    return user_id


def _params_from_payload(payload: Mapping[str, Any]) -> LoanParameters:
    require_fields(payload, PARAM_FIELDS)
    try:
        return LoanParameters(
            boat_price=decimal_from_str(payload["boatPrice"]),
            down_payment=decimal_from_str(payload["downPayment"]),
            interest_rate=decimal_from_str(payload["interestRate"]),
            term_months=int_from_value(payload["termMonths"]),
        )
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid calculation parameters: {exc}") from exc


def _flag(value: Any) -> bool:
    """Only JSON ``true`` or the string ``"true"`` (any case) switch a flag on."""
    return value is True or (isinstance(value, str) and value.strip().lower() == "true")


def _lender_from_payload(data: Any) -> Optional[LenderInfo]:
    if not isinstance(data, dict):
        return None
    rate = data.get("rate")
    try:
        parsed_rate = decimal_from_str(rate) if rate is not None else None
    except ValueError as exc:
        raise ValidationError(f"Invalid lender rate: {rate}") from exc
    return LenderInfo(
        name=sanitize_string(data["name"]) if data.get("name") else None,
        rate=parsed_rate,
        terms=sanitize_string(data["terms"]) if data.get("terms") else None,
    )


def _owned_calculation(calculation_id: str, user_id: str, action: str) -> FinanceCalculation:
    calculation = _store().get(calculation_id)
    if calculation is None:
        raise ApiError(404, "NOT_FOUND", "Calculation not found")
    if calculation.user_id != user_id:
        raise ApiError(403, "FORBIDDEN", f"You can only {action} your own calculations")
    return calculation


@finance.get("/health")
def health():
    return jsonify({"status": "healthy", "service": "finance-service"})


@finance.post("/finance/calculate")
def perform_calculation():
    body = _json_body()
    params = _params_from_payload(body)
    validate_loan_parameters(params)
    result = calculate_loan(params, include_schedule=_flag(body.get("includeSchedule")))
    calculation = FinanceCalculation(
        calculation_id=generate_id(),
        result=result,
        listing_id=body.get("listingId") or "",
        created_at=now_millis(),
    )
    return jsonify({"calculation": calculation.to_dict(), "message": "Calculation completed successfully"})


@finance.post("/finance/calculate/scenarios")
def calculate_scenario_comparison():
    body = _json_body()
    require_fields(body, ["baseParams", "scenarios"])
    base_payload = body["baseParams"]
    if not isinstance(base_payload, dict):
        raise ValidationError("baseParams must be an object")
    base_params = _params_from_payload(base_payload)

    raw_scenarios = body["scenarios"]
    if not isinstance(raw_scenarios, list) or not raw_scenarios:
        raise ValidationError("At least one scenario is required")
    try:
        validate_loan_parameters(base_params)
    except ValidationError as exc:
        raise ValidationError(f"Base parameters: {exc}") from exc

    variations: List[Dict[str, Any]] = []
    for raw in raw_scenarios:
        if not isinstance(raw, dict):
            raise ValidationError("Each scenario must be an object")
        variations.append({SCENARIO_FIELD_NAMES[k]: v for k, v in raw.items() if k in SCENARIO_FIELD_NAMES})
    try:
        scenarios = calculate_scenarios(
            base_params, variations, listing_id=body.get("listingId") or "", validate=True
        )
    except ValidationError:
        raise
    except (TypeError, ValueError, ArithmeticError) as exc:
        raise ValidationError(f"Invalid scenario parameters: {exc}") from exc

    return jsonify(
        {
            "scenarios": [scenario.to_dict() for scenario in scenarios],
            "baseParams": base_params.to_dict(),
            "message": f"{len(scenarios)} scenarios calculated successfully",
        }
    )


@finance.post("/finance/calculate/save")
def save_calculation():
    user_id = _current_user()
    body = _json_body()
    params = _params_from_payload(body)
    validate_loan_parameters(params)
    result = calculate_loan(params, include_schedule=True)

    notes = body.get("calculationNotes")
    calculation = FinanceCalculation(
        calculation_id=generate_id(),
        result=result,
        listing_id=body.get("listingId") or "",
        user_id=user_id,
        saved=True,
        calculation_notes=sanitize_string(notes) if notes else None,
        lender_info=_lender_from_payload(body.get("lenderInfo")),
        created_at=now_millis(),
    )
    _store().add(calculation)
    return (
        jsonify(
            {
                "calculationId": calculation.calculation_id,
                "calculation": calculation.to_dict(),
                "message": "Calculation saved successfully",
            }
        ),
        201,
    )


@finance.get("/finance/calculations/<user_id>")
def get_user_calculations(user_id: str):
    if _current_user() != user_id:
        raise ApiError(403, "FORBIDDEN", "You can only access your own calculations")
    limit = request.args.get("limit", default=20, type=int)
    if limit is None or limit <= 0:
        raise ValidationError("limit must be a positive integer")
    calculations = _store().list_for_user(user_id, limit=limit)
    return jsonify(
        {
            "calculations": [c.to_dict() for c in calculations],
            "total": len(calculations),
            "userId": user_id,
            "message": "Calculations retrieved successfully",
        }
    )


@finance.post("/finance/share/<calculation_id>")
def share_calculation(calculation_id: str):
    user_id = _current_user()
    calculation = _owned_calculation(calculation_id, user_id, "share")
    share_token = calculation.share_token
    if not share_token:
        share_token = generate_id()
        _store().mark_shared(calculation_id, share_token)
        logger.info("Shared calculation %s", calculation_id)
    share_url = f"{current_app.config['FRONTEND_URL'].rstrip('/')}/finance/shared/{share_token}"
    return jsonify(
        {
            "shareToken": share_token,
            "shareUrl": share_url,
            "calculationId": calculation_id,
            "message": "Calculation shared successfully",
        }
    )


@finance.get("/finance/calculations/shared/<share_token>")
def get_shared_calculation(share_token: str):
    calculation = _store().get_by_share_token(share_token)
    if calculation is None:
        raise ApiError(404, "NOT_FOUND", "Shared calculation not found or expired")
    if not calculation.shared:
        raise ApiError(403, "FORBIDDEN", "Calculation is not shared")
    data = calculation.to_dict()
    data.pop("userId", None)
    data.pop("calculationNotes", None)
    return jsonify({"calculation": data, "shared": True, "message": "Shared calculation retrieved successfully"})


@finance.delete("/finance/calculations/<calculation_id>")
def delete_calculation(calculation_id: str):
    user_id = _current_user()
    _owned_calculation(calculation_id, user_id, "delete")
    _store().delete(calculation_id)
    return jsonify({"calculationId": calculation_id, "message": "Calculation deleted successfully"})


@finance.get("/finance/rates/suggested")
def get_suggested_rates():
    try:
        loan_amount = decimal_from_str(request.args.get("loanAmount") or "0")
    except ValueError:
        loan_amount = decimal_from_str("0")
    term_months = request.args.get("termMonths", default=0, type=int) or 0

    if loan_amount < 1000:
        raise ValidationError("Valid loan amount is required (minimum $1,000)")
    if term_months < 12:
        raise ValidationError("Valid loan term is required (minimum 12 months)")

    rates = suggested_interest_rates(loan_amount, term_months)
    return jsonify(
        {
            "suggestedRates": [float(rate) for rate in rates],
            "loanAmount": float(loan_amount),
            "termMonths": term_months,
            "message": "Suggested rates calculated successfully",
        }
    )


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ValidationError)
    def handle_validation_error(exc: ValidationError):
        return _error_response(400, ValidationError.code, str(exc))

    @app.errorhandler(ApiError)
    def handle_api_error(exc: ApiError):
        return _error_response(exc.status, exc.code, exc.message)

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        if exc.code == 404:
            return _error_response(404, "NOT_FOUND", "Endpoint not found")
        if exc.code == 405:
            return _error_response(405, "METHOD_NOT_ALLOWED", f"Method {request.method} not allowed")
        return _error_response(exc.code or 500, exc.name.upper().replace(" ", "_"), exc.description or exc.name)

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception):
        logger.exception("Error in finance service (request %s)", g.get("request_id"))
        return _error_response(500, "INTERNAL_ERROR", "Internal server error")


def create_app(store: Optional[CalculationStore] = None, config: Optional[Mapping[str, Any]] = None) -> Flask:
    """Build the finance service.

    Settings are read from the environment: ``FINANCE_DATABASE_URL`` (store
    location, SQLite file by default), ``FRONTEND_URL`` (base of share links),
    ``FLASK_SECRET_KEY`` and ``CORS_ORIGINS`` (comma separated). ``config``
    overrides any of them. Pass ``store`` to use an existing store instead of
    creating one from ``FINANCE_DATABASE_URL``.
    """
    app = Flask(__name__)
    app.secret_key = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    app.config["FINANCE_DATABASE_URL"] = os.environ.get("FINANCE_DATABASE_URL")
    app.config["FRONTEND_URL"] = os.environ.get("FRONTEND_URL", "https://harborlist.com")
    app.config["CORS_ORIGINS"] = os.environ.get("CORS_ORIGINS", "http://localhost:3000")
    if config:
        app.config.update(config)

    origins = [o.strip() for o in app.config["CORS_ORIGINS"].split(",") if o.strip()]
    CORS(app, resources={r"/finance/*": {"origins": origins}}, supports_credentials=True)

    app.extensions["calculation_store"] = store or create_store_from_env(app.config["FINANCE_DATABASE_URL"])

    @app.before_request
    def assign_request_id() -> None:
        g.request_id = request.headers.get("X-Request-Id") or uuid4().hex

    app.register_blueprint(finance)
    _register_error_handlers(app)
    return app


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    port = int(os.environ.get("SERVICE_PORT", "3003"))
    print(f"Starting finance service on port {port}...")
    create_app().run(host="0.0.0.0", port=port, debug=False)
