# compass_mfa/mfa.py
from flask import Blueprint, current_app, g, jsonify, request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from pydantic import ValidationError

from .enrollment import EnrollmentState
from .errors import GENERIC_MESSAGE, PersistenceUnavailable, TwoFactorError
from .provisioning import CandidateSecret
from .schemas import ChallengeRequest, DisableRequest, ProvisionRequest, VerifyRequest

bp = Blueprint("mfa", __name__, url_prefix="/mfa")

COOKIE_NAME = "compass_session"
IDENTITY_SALT = "identity"

# Endpoints whose failures must all look alike from the outside.
_CODE_ENDPOINTS = ("mfa.verify", "mfa.challenge")


def _serializer():
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=IDENTITY_SALT)


def issue_identity_token(user_id) -> str:
    """Mint the token the session layer hands to clients (used by tests and tooling)."""
    return _serializer().dumps({"uid": str(user_id)})


def _enrollment():
    return current_app.extensions["compass_mfa"]


def _identity_token():
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        return auth[len("Bearer "):].strip()
    return request.cookies.get(COOKIE_NAME)


@bp.before_request
def _load_caller():
    tok = _identity_token()
    if not tok:
        return jsonify(error="authentication required"), 401
    try:
        data = _serializer().loads(tok, max_age=current_app.config["IDENTITY_MAX_AGE"])
    except (BadSignature, SignatureExpired):
        return jsonify(error="authentication required"), 401
    uid = data.get("uid") if isinstance(data, dict) else None
    if not uid:
        return jsonify(error="authentication required"), 401
    g.caller_id = str(uid)


@bp.errorhandler(TwoFactorError)
def _two_factor_error(e):
    # Distinct internally, identical on the wire.
    current_app.logger.info("2fa request rejected: %s (caller %s)", e.reason, g.get("caller_id"))
    resp = jsonify(error=e.public_message)
    if getattr(e, "retry_after", 0):
        resp.headers["Retry-After"] = str(e.retry_after)
    return resp, e.status_code


@bp.errorhandler(PersistenceUnavailable)
def _store_down(e):
    current_app.logger.error("enrollment store unavailable: %s", e)
    return jsonify(error="temporarily unavailable", retryable=True), 503


@bp.errorhandler(ValidationError)
def _bad_request(e):
    if request.endpoint in _CODE_ENDPOINTS:
        current_app.logger.info("2fa request rejected: malformed body (caller %s)", g.get("caller_id"))
        return jsonify(error=GENERIC_MESSAGE), 400
    return jsonify(error="invalid request"), 400


def _body(model):
    return model.model_validate(request.get_json(silent=True) or {})


@bp.post("/provision")
def provision():
    req = _body(ProvisionRequest)
    candidate = _enrollment().begin(g.caller_id, req.user_label)
    return jsonify(
        secretText=candidate.secret_text,
        provisioningDescriptor=candidate.descriptor.as_dict(),
    )


@bp.post("/verify")
def verify():
    req = _body(VerifyRequest)
    # The candidate is held by the client until confirmed; it belongs to whoever is calling.
    candidate = CandidateSecret(secret_text=req.secret_text, owner_id=g.caller_id)
    _enrollment().confirm(candidate, req.submitted_code, req.claimed_user_id, g.caller_id)
    return jsonify(valid=True)


@bp.post("/challenge")
def challenge():
    req = _body(ChallengeRequest)
    _enrollment().verify(req.claimed_user_id, req.submitted_code, req.claimed_user_id, g.caller_id)
    return jsonify(valid=True)


@bp.post("/disable")
def disable():
    req = _body(DisableRequest)
    _enrollment().disable(req.claimed_user_id, req.claimed_user_id, g.caller_id)
    return jsonify(enabled=False)


@bp.get("/status")
def status():
    # Pending candidates are held by the client, never stored, so the server
    # only ever reports "enabled" or "disabled" here.
    state = _enrollment().state(g.caller_id)
    return jsonify(enabled=state is EnrollmentState.ENABLED, state=state.value)
