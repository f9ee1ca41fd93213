"""HTTP entrypoint exposing business search (Cloud Run friendly)."""

from __future__ import annotations

import asyncio
import logging
import os
import threading
from dataclasses import asdict
from typing import Any, Coroutine, Dict, Optional

from flask import Flask, jsonify, request

from business_prospector.core.config import ConfigError, load_config
from business_prospector.core.maps_client import DEFAULT_MAX_RESULTS, MapsClient
from business_prospector.errors import InputValidationError, ProspectorError

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------- App & event loop ----------
app = Flask(__name__)

# The browser session and the pacing queue are bound to one event loop, so all
# requests are funnelled into a single long-lived loop thread.
_loop: Optional[asyncio.AbstractEventLoop] = None
_client: Optional[MapsClient] = None
_lock = threading.Lock()


def _get_loop() -> asyncio.AbstractEventLoop:
    global _loop
    with _lock:
        if _loop is None:
            _loop = asyncio.new_event_loop()
            threading.Thread(target=_loop.run_forever, name="prospector-loop", daemon=True).start()
        return _loop


def _run(coro: Coroutine[Any, Any, Any]) -> Any:
    return asyncio.run_coroutine_threadsafe(coro, _get_loop()).result()


def _get_client() -> MapsClient:
    global _client
    with _lock:
        if _client is None:
            _client = MapsClient(load_config())
        return _client


def _config_failure(exc: ConfigError) -> Any:
    logger.error("Configuration error: %s", exc)
    return jsonify({"error": str(exc)}), 500


# ---------- Routes ----------


@app.get("/healthz")
def healthcheck() -> Any:
    return (
        jsonify(
            {
                "status": "ok",
                "revision": os.getenv("K_REVISION", "unknown"),
            }
        ),
        200,
    )


@app.get("/queue-status")
def queue_status() -> Any:
    try:
        client = _get_client()
    except ConfigError as exc:
        return _config_failure(exc)
    return jsonify({"data": asdict(client.get_queue_status())}), 200


@app.post("/search")
def search() -> Any:
    """
    Search businesses.
    Required JSON fields: industry, location
    Optional: max_results (int), prefer_api (bool)
    """
    payload: Dict[str, Any] = request.get_json(silent=True) or {}

    required = ("industry", "location")
    missing = [f for f in required if not str(payload.get(f) or "").strip()]
    if missing:
        return jsonify({"error": f"missing fields: {', '.join(missing)}"}), 400

    max_results_raw = payload.get("max_results", DEFAULT_MAX_RESULTS)
    try:
        max_results = int(max_results_raw)
    except (TypeError, ValueError):
        return jsonify({"error": "max_results must be numeric"}), 400
    if max_results <= 0:
        return jsonify({"error": "max_results must be positive"}), 400

    prefer_api = payload.get("prefer_api")
    if prefer_api is not None and not isinstance(prefer_api, bool):
        return jsonify({"error": "prefer_api must be a boolean"}), 400

    try:
        client = _get_client()
        results = _run(
            client.search_businesses(
                str(payload["industry"]).strip(),
                str(payload["location"]).strip(),
                max_results=max_results,
                prefer_api=prefer_api,
            )
        )
    except InputValidationError as exc:
        return jsonify({"error": str(exc)}), 400
    except ConfigError as exc:
        return _config_failure(exc)
    except ProspectorError as exc:
        logger.error("Search failed: %s", exc)
        return jsonify({"error": str(exc)}), 502

    return jsonify({"data": [asdict(result) for result in results]}), 200


@app.post("/details")
def details() -> Any:
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    place_id = payload.get("place_id")
    url = payload.get("url")

    if not place_id and not url:
        return jsonify({"error": "place_id or url is required"}), 400

    try:
        result = _run(_get_client().get_business_details(place_id, url))
    except ConfigError as exc:
        return _config_failure(exc)
    except ProspectorError as exc:
        logger.error("Details lookup failed: %s", exc)
        return jsonify({"error": str(exc)}), 502

    return jsonify({"data": asdict(result)}), 200


def main() -> None:
    env_port = os.getenv("PORT")
    logger.info("[BOOT] ENV PORT=%s", env_port)

    port = int(env_port or 8080)
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)

    try:
        app.run(host="0.0.0.0", port=port)
    finally:
        if _client is not None:
            _run(_client.cleanup())


if __name__ == "__main__":
    main()
