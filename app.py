# app.py
from flask import Flask, request, jsonify, g
from functools import wraps
import logging

from db import SessionLocal
from blockchain import Blockchain
from registry import ElectionRegistry
from models import VotingType
from wallet import message_digest_hex, verify_signature_hex
import errors
import config

logger = logging.getLogger(__name__)

STATUS_BY_CATEGORY = [
    (errors.AuthorizationError, 403),
    (errors.ExistenceError, 404),
    (errors.StateError, 409),
    (errors.EligibilityError, 409),
    (errors.ValidationError, 400),
]

def signed_message(req) -> str:
    """What the caller signs: method, path and raw body."""
    return f"{req.method} {req.path}\n{req.get_data(as_text=True)}"

def authenticated_caller(req):
    key = req.headers.get("X-Caller-Key")
    sig = req.headers.get("X-Signature")
    if not key or not sig:
        return None
    if not verify_signature_hex(key, message_digest_hex(signed_message(req)), sig):
        return None
    return key

# auth decorators
def caller_required(f):
    @wraps(f)
    def wrapper(*args, **kwargs):
        caller = authenticated_caller(request)
        if caller is None:
            logger.warning("rejected unsigned or badly signed request to %s", request.path)
            return jsonify({"error": "Unauthorized", "message": "missing or invalid signature"}), 401
        g.caller = caller
        return f(*args, **kwargs)
    return wrapper

def payload():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise errors.ValidationError("request body must be a JSON object")
    return data

def require_int(data, key, default=None):
    value = data.get(key, default)
    if not isinstance(value, int) or isinstance(value, bool):
        raise errors.ValidationError(f"{key} must be an integer")
    return value

def create_app(registry: ElectionRegistry = None, ledger: Blockchain = None):
    app = Flask(__name__)
    app.secret_key = config.SECRET_KEY

    if registry is None:
        ledger = ledger or Blockchain(chain_file=config.BLOCKCHAIN_FILE, difficulty=config.POW_DIFFICULTY)
        registry = ElectionRegistry(SessionLocal, ledger=ledger)
    app.config["REGISTRY"] = registry
    app.config["LEDGER"] = ledger

    @app.errorhandler(errors.ElectionError)
    def election_error(e):
        status = next((code for cls, code in STATUS_BY_CATEGORY if isinstance(e, cls)), 400)
        return jsonify({"error": e.kind, "message": str(e)}), status

    ### ADMIN ###
    @app.route("/elections", methods=["POST"])
    @caller_required
    def create_election():
        data = payload()
        election_id = registry.create_election(
            g.caller,
            title=data.get("title", ""),
            description=data.get("description", ""),
            start_time=require_int(data, "start_time"),
            end_time=require_int(data, "end_time"),
            voting_type=data.get("voting_type", VotingType.single_choice.value),
            max_votes_per_voter=require_int(data, "max_votes_per_voter", 1),
            requires_registration=bool(data.get("requires_registration", False)),
            results_visible=bool(data.get("results_visible", False)),
        )
        return jsonify({"election_id": election_id}), 201

    @app.route("/elections/<int:election_id>/candidates", methods=["POST"])
    @caller_required
    def add_candidate(election_id):
        data = payload()
        candidate_id = registry.add_candidate(g.caller, election_id, data.get("name", ""),
                                              data.get("description", ""))
        return jsonify({"candidate_id": candidate_id}), 201

    @app.route("/elections/<int:election_id>/voters", methods=["POST"])
    @caller_required
    def register_voter(election_id):
        data = payload()
        voter = data.get("voter")
        if not voter:
            raise errors.ValidationError("voter is required")
        registry.register_voter(g.caller, election_id, voter, require_int(data, "weight", 1))
        return jsonify(registry.get_voter_status(election_id, voter)), 201

    @app.route("/elections/<int:election_id>/voters/<voter>", methods=["DELETE"])
    @caller_required
    def remove_voter(election_id, voter):
        registry.remove_voter(g.caller, election_id, voter)
        return jsonify(registry.get_voter_status(election_id, voter))

    @app.route("/elections/<int:election_id>/<any(start, pause, resume, end, cancel):action>", methods=["POST"])
    @caller_required
    def change_state(election_id, action):
        new_state = getattr(registry, f"{action}_election")(g.caller, election_id)
        return jsonify({"election_id": election_id, "state": new_state.value})

    ### VOTER ###
    @app.route("/elections/<int:election_id>/vote", methods=["POST"])
    @caller_required
    def cast_vote(election_id):
        data = payload()
        registry.cast_vote(g.caller, election_id, require_int(data, "candidate_id"))
        return jsonify({"voted": True})

    @app.route("/elections/<int:election_id>/votes", methods=["POST"])
    @caller_required
    def cast_multiple_votes(election_id):
        data = payload()
        ids = data.get("candidate_ids")
        if not isinstance(ids, list):
            raise errors.ValidationError("candidate_ids must be a list")
        registry.cast_multiple_votes(g.caller, election_id, ids)
        return jsonify({"voted": True})

    ### READS ###
    @app.route("/elections/count")
    def election_count():
        return jsonify({"count": registry.get_election_count()})

    @app.route("/elections/<int:election_id>")
    def election_info(election_id):
        return jsonify(registry.get_election_info(election_id))

    @app.route("/elections/<int:election_id>/candidates/<int:candidate_id>")
    def candidate(election_id, candidate_id):
        return jsonify(registry.get_candidate(election_id, candidate_id))

    @app.route("/elections/<int:election_id>/voters/<voter>")
    def voter_status(election_id, voter):
        return jsonify(registry.get_voter_status(election_id, voter))

    @app.route("/elections/<int:election_id>/voters/<voter>/choices")
    @caller_required
    def voter_choices(election_id, voter):
        return jsonify({"choices": registry.get_voter_choices(g.caller, election_id, voter)})

    @app.route("/elections/<int:election_id>/events")
    def election_events(election_id):
        if ledger is None:
            return jsonify({"events": []})
        return jsonify({"events": ledger.find_events(election_id)})

    @app.route("/api/chain")
    def api_chain():
        if ledger is None:
            return jsonify([])
        return jsonify(ledger.to_list())

    return app

if __name__ == "__main__":
    logging.basicConfig(level=config.LOG_LEVEL.upper(),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    create_app().run(debug=True)
