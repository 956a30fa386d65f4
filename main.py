import asyncio
import logging
from datetime import datetime, timezone

import orjson
import functions_framework
from flask import Request

from utils.logger import setup_logging
from handlers.scan_handler import scan_handler

setup_logging()
logger = logging.getLogger(__name__)

VERSION = "1.0.0"

CORS_HEADERS = {
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Methods': 'GET, OPTIONS',
    'Access-Control-Allow-Headers': 'Content-Type'
}

# Global state
_initialized = False

def json_dumps(data) -> str:
    return orjson.dumps(data).decode('utf-8')

def initialize_services():
    """Log configuration problems once per instance"""
    global _initialized
    if not _initialized:
        logger.info("Initializing services...")
        errors = scan_handler.config.validate()
        if errors:
            logger.warning(f"Config warnings: {errors}")
        logger.info("✅ Services initialized")
        _initialized = True

def json_response(payload: dict, status: int = 200):
    headers = dict(CORS_HEADERS, **{'Content-Type': 'application/json'})
    return (json_dumps(payload), status, headers)

def csv_response(text: str, filename: str):
    headers = dict(CORS_HEADERS, **{
        'Content-Type': 'text/csv; charset=utf-8',
        'Content-Disposition': f'attachment; filename="{filename}"'
    })
    return (text, 200, headers)

def handle_health():
    """GET / health check"""
    response = {
        "message": "Purchase Scanner",
        "status": "healthy",
        "version": VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "initialized": _initialized,
        "scanner": scan_handler.get_status(),
        "routes": sorted(JSON_ROUTES) + sorted(EXPORT_ROUTES),
    }
    return json_response(response)

JSON_ROUTES = {
    '/api/scan': 'handle_scan_request',
    '/api/transactions': 'handle_transactions_request',
    '/api/leaderboard': 'handle_leaderboard_request',
    '/api/unused-nfts': 'handle_unused_nfts_request',
}

EXPORT_ROUTES = {
    '/api/export/transactions.csv': 'transactions',
    '/api/export/leaderboard.csv': 'leaderboard',
    '/api/export/unused-nfts.csv': 'unused-nfts',
}

def route_request(request: Request):
    path = request.path.rstrip('/') or '/'
    params = request.args

    if path == '/':
        return handle_health()

    if path in JSON_ROUTES:
        handler = getattr(scan_handler, JSON_ROUTES[path])
        payload, status = asyncio.run(handler(params))
        return json_response(payload, status)

    if path in EXPORT_ROUTES:
        text, filename, error, status = asyncio.run(
            scan_handler.handle_export_request(EXPORT_ROUTES[path], params)
        )
        if text is None:
            return json_response(error, status)
        return csv_response(text, filename)

    return json_response({"success": False, "error": f"Not found: {request.path}"}, 404)

@functions_framework.http
def main(request: Request):
    """Main HTTP entry point"""
    logger.info(f"🚀 {request.method} {request.path}")

    initialize_services()

    # CORS handling
    if request.method == 'OPTIONS':
        return ('', 204, CORS_HEADERS)

    if request.method != 'GET':
        return json_response({"success": False, "error": "Method not allowed"}, 405)

    try:
        return route_request(request)
    except Exception as e:
        logger.error(f"Request failed: {e}", exc_info=True)
        return json_response({"success": False, "error": f"Request error: {str(e)}"}, 500)

# Local testing
if __name__ == "__main__":
    logger.info("Starting local test")
    initialize_services()
    payload, status = asyncio.run(scan_handler.handle_scan_request({}))
    logger.info(f"Scan status {status}: {json_dumps(payload.get('statistics') or payload)}")
