"""
Health Check endpoint для мониторинга и Railway/Docker.

/health проверяет базу данных и то, что периодические циклы Earn
Notifier запущены.
"""

import json
import logging
from datetime import datetime, timezone
from functools import partial
from typing import Optional

from aiohttp import web
from sqlalchemy import text

from database import DatabaseSession

logger = logging.getLogger(__name__)

SERVICE_KEY = web.AppKey("service", object)
STARTED_AT_KEY = web.AppKey("started_at", str)

_dumps = partial(json.dumps, default=str)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


async def health_check_handler(request: web.Request) -> web.Response:
    """
    Health check endpoint: GET /health

    Returns:
        200 OK если все системы работают
        503 Service Unavailable если есть проблемы
    """
    checks = {}

    try:
        async with DatabaseSession() as session:
            await session.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        checks["database"] = f"error: {e}"

    service = request.app.get(SERVICE_KEY)
    if service is None:
        checks["notifier_service"] = "error: not attached"
    elif service.is_running:
        checks["notifier_service"] = "ok"
    else:
        checks["notifier_service"] = "error: stopped"

    all_ok = all(check == "ok" for check in checks.values())
    body = {
        "status": "healthy" if all_ok else "degraded",
        "started_at": request.app[STARTED_AT_KEY],
        "timestamp": _now(),
        "checks": checks,
    }
    if service is not None:
        body["stats"] = service.get_stats()

    return web.json_response(body, status=200 if all_ok else 503, dumps=_dumps)


async def readiness_handler(request: web.Request) -> web.Response:
    """Readiness check endpoint: GET /ready"""
    service = request.app.get(SERVICE_KEY)
    ready = service is not None and service.is_running
    return web.json_response({"ready": ready}, status=200 if ready else 503)


async def liveness_handler(request: web.Request) -> web.Response:
    """Liveness check endpoint: GET /live"""
    return web.json_response({"alive": True}, status=200)


def create_health_app(service=None) -> web.Application:
    app = web.Application()
    app[STARTED_AT_KEY] = _now()
    if service is not None:
        app[SERVICE_KEY] = service

    app.router.add_get('/health', health_check_handler)
    app.router.add_get('/ready', readiness_handler)
    app.router.add_get('/live', liveness_handler)
    app.router.add_get('/', health_check_handler)
    return app


async def start_health_check_server(port: int = 8080, service=None) -> Optional[web.AppRunner]:
    """
    Запуск health check HTTP сервера.

    Args:
        port: Порт для health check endpoint (0 = не запускать)
        service: EarnNotifierService для проверки состояния циклов
    """
    if not port:
        logger.info("Health check server отключен")
        return None

    runner = web.AppRunner(create_health_app(service))
    await runner.setup()

    site = web.TCPSite(runner, '0.0.0.0', port)
    await site.start()

    logger.info(f"✅ Health check server started on port {port}")
    logger.info(f"   GET http://0.0.0.0:{port}/health - Full health check")
    logger.info(f"   GET http://0.0.0.0:{port}/ready - Readiness probe")
    logger.info(f"   GET http://0.0.0.0:{port}/live - Liveness probe")

    return runner


__all__ = [
    'create_health_app',
    'start_health_check_server',
]
