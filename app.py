from __future__ import annotations

import logging
import os
from dataclasses import replace
from typing import Any, Dict

from flask import Flask, jsonify, request

from tbcdata.config_loader import request_from_dict
from tbcdata.items import items_table
from tbcsim.errors import BatchTimeoutError, SimConfigError
from tbcsim.runner import compute_stat_weights, request_stats, run_simulation
from tbcsim.stats import stat_name, stats_to_dict


# keeps a single request from tying up the server
MAX_ITERATIONS = int(os.environ.get("TBCSIM_MAX_ITERATIONS", "20000"))
REQUEST_TIMEOUT = float(os.environ.get("TBCSIM_TIMEOUT", "30"))

logger = logging.getLogger(__name__)

app = Flask(__name__)


def clamp_int(v: Any, lo: int, hi: int, default: int) -> int:
    try:
        x = int(v)
    except (TypeError, ValueError):
        return default
    return max(lo, min(hi, x))


def _sim_request(payload: Dict[str, Any]):
    sim_req = request_from_dict(payload)
    iterations = clamp_int(sim_req.iterations, 1, MAX_ITERATIONS, 1000)
    if iterations != sim_req.iterations:
        logger.info("iterations clamped %d -> %d", sim_req.iterations, iterations)
    # worker processes are not spawned from request handlers
    return replace(sim_req, iterations=iterations, workers=1, include_logs=False)


def _json_payload():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return None
    return payload


@app.errorhandler(SimConfigError)
def handle_config_error(e: SimConfigError):
    return jsonify({"error": str(e)}), 400


@app.errorhandler(BatchTimeoutError)
def handle_batch_timeout(e: BatchTimeoutError):
    return jsonify({"error": str(e)}), 503


@app.get("/api/items")
def api_items():
    return jsonify({"items": items_table()})


@app.post("/api/stats")
def api_stats():
    payload = _json_payload()
    if payload is None:
        return jsonify({"error": "invalid json"}), 400
    sim_req = _sim_request(payload)
    return jsonify({"stats": stats_to_dict(request_stats(sim_req))})


@app.post("/api/simulate")
def api_simulate():
    payload = _json_payload()
    if payload is None:
        return jsonify({"error": "invalid json"}), 400
    sim_req = _sim_request(payload)
    result = run_simulation(sim_req, timeout=REQUEST_TIMEOUT)
    return jsonify(result.to_dict())


@app.post("/api/statweights")
def api_statweights():
    payload = _json_payload()
    if payload is None:
        return jsonify({"error": "invalid json"}), 400
    sim_req = _sim_request(payload)
    weights = compute_stat_weights(sim_req, timeout=REQUEST_TIMEOUT)
    return jsonify({"weights": {stat_name(s): w for s, w in weights.items()}})


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
    app.run(host="127.0.0.1", port=int(os.environ.get("PORT", "3333")), debug=False)
