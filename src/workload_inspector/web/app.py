"""
HTTP transport for the workload inspector.
"""

import secrets
import time
import uuid
from typing import Any, Dict, Optional

from flask import Blueprint, Flask, Response, current_app, g, jsonify, request
from pydantic import ValidationError
from werkzeug.exceptions import BadRequest, HTTPException
from werkzeug.serving import BaseWSGIServer, make_server

from ..config.base import HttpConfig
from ..core.exceptions import InspectorError, PipelineFailure
from ..inspector import Inspector
from ..utils.logger import get_logger
from .models import EXPECTED_REQUEST_FORMAT, RunCommandRequest

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

api = Blueprint("inspector_api", __name__)


def create_token() -> str:
    """Generate a random API token."""
    return secrets.token_urlsafe(32)


def get_inspector() -> Inspector:
    return current_app.extensions["inspector"]


def parse_body(model_cls):
    """Parses JSON body against a Pydantic model."""
    data = request.get_json(force=True, silent=True)
    if not isinstance(data, dict):
        raise BadRequest(EXPECTED_REQUEST_FORMAT)
    try:
        return model_cls.model_validate(data)
    except ValidationError as exc:
        raise BadRequest(EXPECTED_REQUEST_FORMAT) from exc


# --- Routes ---

@api.route("/ping", methods=["GET"])
def ping():
    return Response(get_inspector().ping(), mimetype="text/plain")


@api.route("/env", methods=["GET"])
def env():
    return jsonify(get_inspector().get_environment())


@api.route("/run", methods=["POST"])
def run():
    payload = parse_body(RunCommandRequest)
    try:
        result = get_inspector().run_command(payload.command)
    except PipelineFailure as exc:
        body: Dict[str, Any] = exc.result.to_dict()
        body["error"] = str(exc)
        return jsonify(body), 500
    except InspectorError as exc:
        return jsonify({"error": str(exc)}), 500
    return jsonify(result.to_dict())


# --- Middleware ---

def _assign_request_id():
    g.request_id = str(uuid.uuid4())
    g.request_start = time.perf_counter()
    logger.info("[%s] %s %s", request.method, request.path, g.request_id)


def _require_token(token: str):
    def check():
        if request.headers.get("Authorization") != f"Bearer {token}":
            return Response("Unauthorized", status=401, mimetype="text/plain")
        return None

    return check


def _log_response(response: Response) -> Response:
    request_id = g.get("request_id", "")
    duration = time.perf_counter() - g.get("request_start", time.perf_counter())
    response.headers[REQUEST_ID_HEADER] = request_id
    logger.info(
        "[%s] %s %s %d %.3fs",
        request.method,
        request.path,
        request_id,
        response.status_code,
        duration,
    )
    return response


def _handle_exception(error):
    if isinstance(error, HTTPException):
        code = error.code or 500
        message = getattr(error, "description", str(error))
    else:
        logger.exception("Unhandled error serving %s", request.path)
        code = 500
        message = str(error) or "Internal Server Error"
    return jsonify({"error": message}), code


def create_app(
    inspector: Inspector,
    http_config: Optional[HttpConfig] = None,
    token: Optional[str] = None,
) -> Flask:
    """Build the Flask application serving ``inspector``.

    When ``http_config.use_auth`` is set every request must carry
    ``Authorization: Bearer <token>``; a token is generated if none is given
    and stored in ``app.config["API_TOKEN"]``.
    """
    http_config = http_config or HttpConfig()

    app = Flask(__name__)
    app.extensions["inspector"] = inspector

    app.before_request(_assign_request_id)
    if http_config.use_auth:
        token = token or create_token()
        app.config["API_TOKEN"] = token
        logger.info("--------------------------------")
        logger.info("http server api token: %s", token)
        logger.info(
            "to use the token include, 'Authorization: Bearer %s' in the request header",
            token,
        )
        logger.info("--------------------------------")
        app.before_request(_require_token(token))
    app.after_request(_log_response)
    app.register_error_handler(Exception, _handle_exception)

    app.register_blueprint(api)
    return app


def make_http_server(app: Flask, http_config: HttpConfig, host: str = "0.0.0.0") -> BaseWSGIServer:
    """Create a threaded WSGI server for ``app``; call ``serve_forever`` to start."""
    server = make_server(host, http_config.port_number, app, threaded=True)
    logger.info("http server started on %s:%s", host, http_config.port)
    return server
