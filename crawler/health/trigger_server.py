"""
HTTP trigger and health server for the veille crawler.
"""
import asyncio
import json
import os
from datetime import datetime, timezone
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Dict, Optional, Tuple

from loguru import logger

from clients.document_store import DocumentStore
from crawler.errors import ConfigurationError
from crawler.factories.pipeline_factory import create_pipeline, load_store
from utils.config.settings import ScraperSettings

TRIGGER_PATHS = ('/', '/veille/run')
HEALTH_PATHS = ('/health', '/api/health')


class TriggerServer(HTTPServer):
    """HTTPServer carrying the settings and store shared by every run."""

    def __init__(self, server_address, settings: ScraperSettings, store: DocumentStore):
        super().__init__(server_address, TriggerHandler)
        self.settings = settings
        self.store = store
        self.last_run: Dict[str, Any] = {
            "timestamp": None,
            "status": "never_run",
        }


def handle_trigger(settings: ScraperSettings, store: DocumentStore,
                   payload: Dict[str, Any]) -> Tuple[int, Dict[str, Any]]:
    """Run one cycle for a trigger request and build the HTTP response."""
    mode = payload.get('mode') or 'full'
    site_id = payload.get('siteId')
    keyword_id = payload.get('keywordId')

    pipeline = create_pipeline(settings, store=store)
    try:
        summary = asyncio.run(pipeline.run(mode=mode, site_id=site_id, keyword_id=keyword_id))
    except ConfigurationError as e:
        logger.error(f"Veille run refused: {e}")
        return 500, {"error": str(e)}
    except ValueError as e:
        return 400, {"error": str(e)}
    except Exception as e:
        logger.error(f"Veille scraper error: {e}")
        return 500, {"error": str(e) or "Unknown error"}

    return 200, {"success": True, **summary.to_dict()}


class TriggerHandler(BaseHTTPRequestHandler):
    """Health checks on GET, monitoring cycles on POST."""

    def _send_json(self, status: int, payload: Dict[str, Any]) -> None:
        self.send_response(status)
        self.send_header('Content-type', 'application/json')
        self.end_headers()
        self.wfile.write(json.dumps(payload).encode())

    def do_GET(self):
        if self.path in HEALTH_PATHS:
            self._send_json(200, {
                "status": "healthy",
                "service": "Veille Crawler",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "last_run": self.server.last_run,
            })
        else:
            self._send_json(404, {"error": "Not Found", "path": self.path})

    def do_POST(self):
        if self.path not in TRIGGER_PATHS:
            self._send_json(404, {"error": "Not Found", "path": self.path})
            return

        content_length = int(self.headers.get('Content-Length', 0))
        body = self.rfile.read(content_length) if content_length > 0 else b'{}'
        try:
            payload = json.loads(body.decode('utf-8') or '{}')
        except (UnicodeDecodeError, json.JSONDecodeError):
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        logger.info(f"Received veille run request (mode: {payload.get('mode') or 'full'})")
        status, response = handle_trigger(self.server.settings, self.server.store, payload)

        self.server.last_run = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "status": "success" if status == 200 else "error",
        }
        self._send_json(status, response)

    def log_message(self, format, *args):
        """Override to use loguru instead of print."""
        logger.debug(f"HTTP: {self.address_string()} - {format % args}")


def start_trigger_server(port: Optional[int] = None, settings: Optional[ScraperSettings] = None,
                         store: Optional[DocumentStore] = None) -> None:
    """Serve the trigger endpoint until interrupted."""
    port = port or int(os.environ.get('PORT', 8000))
    settings = settings or ScraperSettings.from_env()
    store = store or load_store(settings)

    server = TriggerServer(('0.0.0.0', port), settings, store)
    logger.info(f"🚀 Veille trigger server started on port {port}")
    logger.info(f"   - Trigger endpoint: POST http://localhost:{port}/veille/run")
    logger.info(f"   - Health endpoint: http://localhost:{port}/health")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Trigger server stopped")
    finally:
        server.server_close()
