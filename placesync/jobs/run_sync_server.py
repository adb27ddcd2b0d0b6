"""HTTP entrypoint that triggers listing syncs (Cloud Run friendly)."""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from contextlib import closing
from typing import Any, Dict

from flask import Flask, jsonify, request

from placesync.core.alerts import send_alert
from placesync.core.config import ConfigError, get_settings
from placesync.core.db import open_store
from placesync.core.log import configure_logging
from placesync.jobs.run_sync import build_engine

logger = logging.getLogger(__name__)

# ---------- App & executor ----------
app = Flask(__name__)
# One worker so sync runs never overlap against the rate-limited API.
_executor = ThreadPoolExecutor(max_workers=1)

# ---------- Routes ----------


@app.get("/")
def root() -> Any:
    return "ok", 200


@app.get("/healthz")
def healthcheck() -> Any:
    """Lightweight health endpoint; reads settings only."""
    settings = get_settings()
    return (
        jsonify(
            {
                "status": "ok",
                "api_key_configured": bool(settings.google_api_key),
                "sync_enabled": settings.sync_enabled,
                "revision": os.getenv("K_REVISION", "unknown"),
            }
        ),
        200,
    )


@app.post("/sync")
def enqueue_sync() -> Any:
    """
    Queue a full sync.
    Optional JSON fields: force (bool), dry_run (bool)
    """
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    force = bool(payload.get("force", False))
    dry_run = bool(payload.get("dry_run", False))

    settings = get_settings()
    if not settings.sync_enabled and not force:
        return jsonify({"error": "sync is disabled; pass force=true to override"}), 409
    if not settings.google_api_key:
        return jsonify({"error": "GOOGLE_API_KEY is not configured"}), 503

    logger.info("Queueing sync job dry_run=%s force=%s", dry_run, force)
    _executor.submit(_run_sync_safe, dry_run)
    return jsonify({"data": {"status": "queued", "dry_run": dry_run}}), 202


@app.post("/verify")
def verify_listing() -> Any:
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    place_id = str(payload.get("place_id") or "").strip()
    if not place_id:
        return jsonify({"error": "place_id is required"}), 400

    try:
        with closing(build_engine(get_settings())) as engine:
            result = engine.verify_restaurant(place_id)
    except ConfigError as exc:
        return jsonify({"error": str(exc)}), 503

    body = {"place_id": result.place_id, "id": result.id, "name": result.name, "success": result.success}
    if not result.success:
        return jsonify({"error": result.error, "data": body}), 502
    return jsonify({"data": body}), 200


@app.get("/stats")
def listing_stats() -> Any:
    with open_store(get_settings().database_url) as store:
        stats = store.get_stats()
    return jsonify({"data": stats}), 200


# ---------- Internals ----------


def _run_sync_safe(dry_run: bool) -> None:
    try:
        with closing(build_engine(get_settings())) as engine:
            engine.sync(dry_run=dry_run)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Sync job failed: %s", exc)
        send_alert(exc, "placesync http sync")


def main() -> None:
    settings = get_settings()
    configure_logging(settings)
    port = int(os.getenv("PORT") or settings.worker_port)
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
