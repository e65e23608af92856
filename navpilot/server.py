"""
Autopilot REST API
==================

Flask app exposing the provider through the Signal K v2 autopilot
routes:

    GET  /signalk/v2/api/vessels/self/autopilots/<id>
    GET  .../<id>/state          PUT .../<id>/state          {"value": "enabled"}
    GET  .../<id>/mode           PUT .../<id>/mode           {"value": "auto"}
    GET  .../<id>/target         PUT .../<id>/target         {"value": 1.57}
    PUT  .../<id>/target/adjust  {"value": 0.0174}
    POST .../<id>/engage
    POST .../<id>/disengage
    POST .../<id>/tack/<port|starboard>
    POST .../<id>/gybe/<port|starboard>
    POST .../<id>/dodge          {"value": 0.1}

Usage:
    app = create_app(plugin.provider)
    app.run(host="0.0.0.0", port=3000)
"""

import logging
import math

from flask import Flask, jsonify, request

from .control.provider import AutopilotProvider
from .exceptions import (
    AutopilotError, UnknownDeviceError, InvalidArgumentError,
    PreconditionFailedError, UnsupportedError,
)

logger = logging.getLogger(__name__)

API_ROOT = "/signalk/v2/api/vessels/self/autopilots"

_STATUS_CODES = (
    (UnknownDeviceError, 404),
    (InvalidArgumentError, 400),
    (PreconditionFailedError, 409),
    (UnsupportedError, 501),
)


def _status_code(error: AutopilotError) -> int:
    for error_type, code in _STATUS_CODES:
        if isinstance(error, error_type):
            return code
    return 500


def _ok():
    return jsonify({"state": "COMPLETED", "statusCode": 200, "message": "OK"})


def _value(numeric: bool = False):
    """Extract ``value`` from the JSON body."""
    body = request.get_json(silent=True) or {}
    if "value" not in body:
        raise InvalidArgumentError("Missing 'value' in request body")
    value = body["value"]
    if numeric:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidArgumentError(f"Expected a number, got: {value!r}")
        # JSON parsing accepts NaN and Infinity
        if not math.isfinite(value):
            raise InvalidArgumentError(f"Expected a finite number, got: {value!r}")
        return float(value)
    return value


def create_app(provider: AutopilotProvider) -> Flask:
    """Create the REST app for a provider."""
    app = Flask(__name__)

    @app.errorhandler(AutopilotError)
    def handle_autopilot_error(error: AutopilotError):
        code = _status_code(error)
        logger.warning(f"{request.method} {request.path} failed ({code}): {error}")
        return jsonify({"state": "FAILED", "statusCode": code, "message": str(error)}), code

    # =========================================================================
    # Reads
    # =========================================================================

    @app.route(f"{API_ROOT}/<device_id>", methods=["GET"])
    def get_data(device_id):
        return jsonify(provider.get_data(device_id))

    @app.route(f"{API_ROOT}/<device_id>/state", methods=["GET"])
    def get_state(device_id):
        return jsonify({"value": provider.get_state(device_id)})

    @app.route(f"{API_ROOT}/<device_id>/mode", methods=["GET"])
    def get_mode(device_id):
        return jsonify({"value": provider.get_mode(device_id)})

    @app.route(f"{API_ROOT}/<device_id>/target", methods=["GET"])
    def get_target(device_id):
        return jsonify({"value": provider.get_target(device_id)})

    # =========================================================================
    # Commands
    # =========================================================================

    @app.route(f"{API_ROOT}/<device_id>/state", methods=["PUT"])
    def set_state(device_id):
        provider.validate_device_id(device_id)
        provider.set_state(_value(), device_id)
        return _ok()

    @app.route(f"{API_ROOT}/<device_id>/mode", methods=["PUT"])
    def set_mode(device_id):
        provider.validate_device_id(device_id)
        provider.set_mode(_value(), device_id)
        return _ok()

    @app.route(f"{API_ROOT}/<device_id>/target", methods=["PUT"])
    def set_target(device_id):
        provider.validate_device_id(device_id)
        provider.set_target(_value(numeric=True), device_id)
        return _ok()

    @app.route(f"{API_ROOT}/<device_id>/target/adjust", methods=["PUT"])
    def adjust_target(device_id):
        provider.validate_device_id(device_id)
        provider.adjust_target(_value(numeric=True), device_id)
        return _ok()

    @app.route(f"{API_ROOT}/<device_id>/engage", methods=["POST"])
    def engage(device_id):
        provider.engage(device_id)
        return _ok()

    @app.route(f"{API_ROOT}/<device_id>/disengage", methods=["POST"])
    def disengage(device_id):
        provider.disengage(device_id)
        return _ok()

    @app.route(f"{API_ROOT}/<device_id>/tack/<direction>", methods=["POST"])
    def tack(device_id, direction):
        provider.tack(direction, device_id)
        return _ok()

    @app.route(f"{API_ROOT}/<device_id>/gybe/<direction>", methods=["POST"])
    def gybe(device_id, direction):
        provider.gybe(direction, device_id)
        return _ok()

    @app.route(f"{API_ROOT}/<device_id>/dodge", methods=["POST"])
    def dodge(device_id):
        provider.validate_device_id(device_id)
        provider.dodge(_value(numeric=True), device_id)
        return _ok()

    return app
