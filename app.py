# app.py
import os
import asyncio
import logging
from flask import Flask, request, jsonify
from dotenv import load_dotenv

# local dev .env loader (safe to keep; .env should not be committed)
load_dotenv()

# Flask app
app = Flask(__name__)
logging.basicConfig(level=logging.INFO)

# Config from environment (defaults for local dev)
PRERENDER_SECRET = os.environ.get("PRERENDER_SECRET", "")  # required, /prerender answers 403 without it
BROWSER_TIMEOUT = int(os.environ.get("BROWSER_TIMEOUT", "180"))  # seconds, whole run

# Import the runner after load_dotenv so env defaults are picked up
from prerenderer.config import ConfigError, RunConfig
from prerenderer.runner import PrerenderError, run_prerender


@app.route("/", methods=["GET"])
def health():
    return {
        "status": "ok",
        "service": "prerender-spa",
        "note": "POST to /prerender with {routes,staticDir,...}"
    }, 200


@app.route("/prerender", methods=["POST"])
def prerender_endpoint():
    # Validate JSON
    if not request.is_json:
        return jsonify({"error": "invalid json"}), 400

    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "invalid json"}), 400

    if not payload.get("routes") or not payload.get("staticDir"):
        return jsonify({"error": "missing fields"}), 400

    # no secret configured means the endpoint stays closed
    if not PRERENDER_SECRET:
        app.logger.warning("PRERENDER_SECRET is not set, refusing /prerender")
        return jsonify({"error": "prerender secret not configured"}), 403

    if payload.get("secret") != PRERENDER_SECRET:
        return jsonify({"error": "invalid secret"}), 403

    try:
        config = RunConfig.from_mapping(payload)
    except ConfigError as e:
        return jsonify({"error": f"invalid config: {e}"}), 400

    try:
        results = run_prerender(config, timeout=BROWSER_TIMEOUT)
    except asyncio.TimeoutError:
        app.logger.exception("Timeout while prerendering")
        return jsonify({"error": "processing timeout"}), 500
    except PrerenderError as e:
        app.logger.exception("Prerendering failed")
        return jsonify({"error": str(e), "route": e.route}), 500
    except Exception as e:
        app.logger.exception("Prerendering failed")
        return jsonify({"error": f"processing failed: {str(e)}"}), 500

    return jsonify({
        "rendered": True,
        "output_dir": config.resolved_output_dir,
        "routes": [r.route for r in results]
    }), 200


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5000))
    # Use 0.0.0.0 so containers can bind correctly
    app.run(host="0.0.0.0", port=port)
