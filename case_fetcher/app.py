import logging
import sqlite3
import traceback
import uuid

from flask import Flask, jsonify, request, session

from .captcha import ChallengeStore
from .config import ENV_PREFIX, DefaultConfig, configure_logging
from .database import QueryLog, init_db
from .models import Outcome, OutcomeKind
from .resolver import build_resolver
from .validation import ValidationError, validate_query

logger = logging.getLogger(__name__)

MISSING_FIELDS_MESSAGE = "Please provide all required fields."
NOT_FOUND_MESSAGE = "No case found with these details."
INVALID_CAPTCHA_MESSAGE = "Invalid CAPTCHA. Please try again."
UNEXPECTED_MESSAGE = "An unexpected error occurred. Please try again later."

# OutcomeKind -> (status, user-facing message)
ERROR_RESPONSES = {
    OutcomeKind.CAPTCHA_NOT_FOUND: (503, "Could not find the CAPTCHA on the court website. Please try again."),
    OutcomeKind.CAPTCHA_UNSOLVED: (503, "Could not solve the court website's CAPTCHA. Please try again."),
    OutcomeKind.UPSTREAM_UNAVAILABLE: (500, "The court website is unavailable. Please try again later."),
    OutcomeKind.PARSE_ERROR: (500, "Could not read the court website's response."),
}
RETRYABLE = (OutcomeKind.CAPTCHA_NOT_FOUND, OutcomeKind.CAPTCHA_UNSOLVED)


def outcome_response(outcome):
    if outcome.kind is OutcomeKind.FOUND:
        return jsonify(success=True, data=outcome.record.to_dict(include_raw=False)), 200
    if outcome.kind is OutcomeKind.NOT_FOUND:
        return jsonify(success=False, message=NOT_FOUND_MESSAGE), 404

    status, message = ERROR_RESPONSES[outcome.kind]
    body = {"error": message}
    if outcome.kind in RETRYABLE:
        body["retryable"] = True
    return jsonify(body), status


def create_app(test_config=None, resolver=None, query_log=None):
    app = Flask(__name__)
    app.config.from_object(DefaultConfig)
    app.config.from_prefixed_env(ENV_PREFIX)
    if test_config is not None:
        app.config.from_mapping(test_config)

    configure_logging(app.config["LOG_LEVEL"])

    if query_log is None:
        init_db(app.config["DATABASE"])
        query_log = QueryLog(app.config["DATABASE"])
    if resolver is None:
        resolver = build_resolver(app.config)
    challenges = ChallengeStore(ttl=app.config["CAPTCHA_TTL"])

    app.extensions["case_fetcher"] = {
        "resolver": resolver,
        "query_log": query_log,
        "challenges": challenges,
    }
    logger.info("Case fetcher ready (resolver=%s, database=%s)", resolver.name, app.config["DATABASE"])

    @app.route("/api/case", methods=["POST"])
    def case():
        payload = request.get_json(silent=True)
        try:
            query = validate_query(payload)
        except ValidationError as e:
            logger.info("Rejected request: %s", e)
            return jsonify(error=MISSING_FIELDS_MESSAGE), 400

        captcha_attempt = None
        if app.config["REQUIRE_CAPTCHA"]:
            captcha_attempt = str(payload.get("captcha") or "").strip()
            if not challenges.verify(session.get("captcha_id"), captcha_attempt):
                logger.info("CAPTCHA check failed for %s", query)
                return jsonify(error=INVALID_CAPTCHA_MESSAGE), 400

        logger.info("Received case query %s", query.to_dict())
        try:
            outcome = resolver.resolve(query)
            response = outcome_response(outcome)
        except Exception:
            logger.exception("An unexpected error occurred for %s", query)
            outcome = Outcome.failure(OutcomeKind.UPSTREAM_UNAVAILABLE, UNEXPECTED_MESSAGE,
                                      detail=traceback.format_exc())
            response = jsonify(error=UNEXPECTED_MESSAGE), 500

        query_log.append(query, outcome, captcha_attempt=captcha_attempt)
        return response

    @app.route("/api/log", methods=["GET"])
    def log():
        try:
            entries = query_log.list()
        except sqlite3.Error:
            logger.exception("Could not read the query log")
            return jsonify(error=UNEXPECTED_MESSAGE), 500
        return jsonify([entry.to_dict() for entry in entries])

    @app.route("/api/captcha", methods=["GET"])
    def captcha():
        # one challenge per browser session, keyed by a cookie-held id
        captcha_id = session.get("captcha_id")
        if not captcha_id:
            captcha_id = str(uuid.uuid4())
            session["captcha_id"] = captcha_id
        return jsonify(captcha=challenges.issue(captcha_id))

    @app.route("/api/health", methods=["GET"])
    def health():
        return jsonify(status="ok", resolver=resolver.name)

    return app


def main():
    app = create_app()
    app.run(debug=False)


if __name__ == "__main__":
    main()
