"""HTTP front door: accept archive requests and serve archived objects."""

import hmac
import logging
from typing import Optional

from flask import Flask, Response, jsonify, request

from site_archive.archiver import Archiver
from site_archive.config import Config
from site_archive.errors import ArchiveError, InvalidKey, StorageFailure
from site_archive.urls import get_content_type

logger = logging.getLogger(__name__)

CACHE_CONTROL = "public, max-age=31536000"


def create_app(config: Optional[Config] = None, archiver: Optional[Archiver] = None) -> Flask:
    """Create the Flask application.

    Args:
        config: Configuration; read from the environment when omitted.
        archiver: Archiver to drive; built from the configuration when omitted.
    """
    config = config or Config()
    archiver = archiver or Archiver.from_config(config)
    store = archiver.store

    app = Flask(__name__)
    app.config["ARCHIVER"] = archiver

    @app.after_request
    def add_cors_headers(response):
        response.headers["Access-Control-Allow-Origin"] = "*"
        return response

    @app.get("/")
    def index():
        return jsonify({"domains": archiver.domain_count()})

    @app.post("/archive")
    def archive():
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            return jsonify({"error": "Request body must be a JSON object"}), 400
        archive_key = str(payload.get("archiveKey") or "").encode("utf-8")
        if not config.archiver_key or not hmac.compare_digest(archive_key, config.archiver_key.encode("utf-8")):
            return jsonify({"error": "Invalid archive key"}), 403

        url = payload.get("url")
        if not url or not isinstance(url, str):
            return jsonify({"error": "url is required"}), 400

        try:
            preview_url = archiver.archive(url)
        except ArchiveError as e:
            logger.error("Archive request for %s failed: %s", url, e)
            return jsonify({"error": "Failed to archive page", "message": str(e)}), 500

        return jsonify(
            {
                "success": True,
                "message": "Page archived successfully",
                "url": url,
                "previewUrl": preview_url,
            }
        )

    @app.get("/<domain>")
    def list_archives(domain):
        try:
            dates = archiver.list_archives(domain)
        except StorageFailure:
            return jsonify({"error": "Failed to list archives"}), 500
        return jsonify({"domain": domain, "dates": dates})

    @app.get("/<domain>/<date>/", defaults={"subpath": "index.html"})
    @app.get("/<domain>/<date>/<path:subpath>")
    def serve_archive(domain, date, subpath):
        storage_key = f"{domain}/{date}/{subpath}"
        try:
            stored = store.get(storage_key)
        except InvalidKey:
            stored = None
        except StorageFailure as e:
            logger.error("Failed to retrieve %s: %s", storage_key, e)
            return jsonify({"error": "Failed to retrieve archive", "message": str(e)}), 500

        if stored is None:
            logger.info("Object not found: %s", storage_key)
            return jsonify({"error": "Archive not found", "path": storage_key}), 404

        response = Response(stored.body, status=200)
        response.headers["Content-Type"] = get_content_type(subpath)
        response.headers["ETag"] = stored.http_etag
        response.headers["Cache-Control"] = CACHE_CONTROL
        return response

    return app
