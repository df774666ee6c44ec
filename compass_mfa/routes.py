import time
from flask import Blueprint, current_app, jsonify

from .errors import PersistenceUnavailable

bp = Blueprint("web", __name__)

START_TS = time.time()

@bp.get("/healthz")
def healthz():
    # Liveness: process is up
    return jsonify(status="ok", uptime_seconds=round(time.time() - START_TS, 1))

@bp.get("/readyz")
def readyz():
    # Readiness: the enrollment store answers
    try:
        current_app.extensions["compass_mfa"].store.ping()
    except PersistenceUnavailable as e:
        current_app.logger.warning("readyz: %s", e)
        return jsonify(status="unavailable"), 503
    return jsonify(status="ready")
