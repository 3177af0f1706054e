#!/usr/bin/env python3
"""HTTP front end for controller-coder."""

import asyncio
import logging
import threading

from dotenv import load_dotenv
from flask import Flask, jsonify, request

from config.settings import load_settings
from core.committer import BranchCommitter
from core.errors import (
    AmbiguousOutput,
    BranchResolutionExhausted,
    CoderError,
    CommitStepFailed,
    GenerationUnavailable,
    MalformedPayload,
    SchemaViolation,
)
from core.orchestrator import Orchestrator
from utils.codebase import build_request, read_storage_impl, read_storage_interface

load_dotenv()

logger = logging.getLogger(__name__)

app = Flask(__name__)
settings = load_settings()

# The committer assumes exclusive use of the checkout; one commit job at a time.
_commit_lock = threading.Lock()

_STATUS_BY_ERROR = [
    (AmbiguousOutput, 422),
    (MalformedPayload, 422),
    (SchemaViolation, 422),
    (GenerationUnavailable, 502),
    (BranchResolutionExhausted, 409),
    (CommitStepFailed, 500),
    (ValueError, 400),
    (OSError, 500),
    (RuntimeError, 500),
]


def _new_orchestrator():
    return Orchestrator.from_settings(settings)


async def _generate(call):
    """Run one generation call on an orchestrator created inside this event loop.

    Every request gets its own asyncio.run() loop, and the provider client's
    pooled connections are bound to the loop that opened them.
    """
    orchestrator = _new_orchestrator()
    try:
        return await call(orchestrator)
    finally:
        await orchestrator.aclose()


def _file_to_dict(entry):
    return {"path": entry.path, "content": entry.content}


def _require(data, *keys):
    """Return the first missing/blank key, or None."""
    for key in keys:
        value = data.get(key)
        if not isinstance(value, str) or not value.strip():
            return key
    return None


@app.errorhandler(CoderError)
@app.errorhandler(ValueError)
@app.errorhandler(OSError)
@app.errorhandler(RuntimeError)
def handle_error(error):
    status = 500
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            status = code
            break
    logger.error("%s on %s: %s", type(error).__name__, request.path, error)
    body = {"error": str(error), "type": type(error).__name__}
    if isinstance(error, CommitStepFailed):
        body.update({
            "command": error.command,
            "returncode": error.returncode,
            "stdout": error.stdout,
            "stderr": error.stderr,
            "phase": error.phase,
        })
    if isinstance(error, SchemaViolation):
        body.update({"stage": error.stage, "missing": error.missing, "mistyped": error.mistyped})
    return jsonify(body), status


@app.route("/api/resource-type", methods=["POST"])
def api_resource_type():
    data = request.get_json(silent=True) or {}
    missing = _require(data, "sqlSchema", "stateMachine")
    if missing:
        return jsonify({"error": f"Missing {missing}"}), 400

    resource_name, entry = asyncio.run(_generate(
        lambda o: o.generate_resource_type(data["sqlSchema"], data["stateMachine"])
    ))
    return jsonify({"resource_name": resource_name, "files": [_file_to_dict(entry)]})


@app.route("/api/storage-interface", methods=["POST"])
def api_storage_interface():
    data = request.get_json(silent=True) or {}
    if _require(data, "resource_name"):
        return jsonify({"error": "Missing resource_name"}), 400

    current = read_storage_interface(settings.code_base)
    entry = asyncio.run(_generate(
        lambda o: o.generate_storage_interface(data["resource_name"].strip(), current)
    ))
    return jsonify({"files": [_file_to_dict(entry)]})


@app.route("/api/storage-impl", methods=["POST"])
def api_storage_impl():
    data = request.get_json(silent=True) or {}
    if _require(data, "resource_name"):
        return jsonify({"error": "Missing resource_name"}), 400

    current = read_storage_impl(settings.code_base)
    entry = asyncio.run(_generate(
        lambda o: o.generate_storage_impl(data["resource_name"].strip(), current)
    ))
    return jsonify({"files": [_file_to_dict(entry)]})


@app.route("/api/controller", methods=["POST"])
def api_controller():
    """Full pipeline. Commits to a new branch unless createBranch is false."""
    data = request.get_json(silent=True) or {}
    missing = _require(data, "sqlSchema", "stateMachine")
    if missing:
        return jsonify({"error": f"Missing {missing}"}), 400

    create_branch = data.get("createBranch", True)
    if not isinstance(create_branch, bool):
        return jsonify({"error": "createBranch must be a boolean"}), 400

    gen_request = build_request(settings.code_base, data["sqlSchema"], data["stateMachine"])
    state = asyncio.run(_generate(lambda o: o.run_state(gen_request)))
    resource_name, files = state.resource_name, state.files

    if not create_branch:
        return jsonify({
            "resource_name": resource_name,
            "files": [_file_to_dict(f) for f in files],
        })

    with _commit_lock:
        branch = asyncio.run(BranchCommitter(settings.code_base).commit(resource_name, files))

    return jsonify({
        "resource_name": resource_name,
        "branch_name": branch,
        "message": f"The code has been generated and committed to branch {branch}.",
    })


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    print(f"controller-coder running at http://localhost:{settings.port}")
    app.run(debug=False, port=settings.port)
