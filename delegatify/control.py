import time
import logging
from typing import Optional

import discord
from aiohttp import web

from .context import AppContext

logger = logging.getLogger("delegatify")

APP_KEY = web.AppKey("delegatify", AppContext)
CLIENT_KEY = web.AppKey("client", object)


def _authorized(request: web.Request) -> bool:
    key = request.app[APP_KEY].settings.control.get("key", "")
    if not key:
        return True
    return request.headers.get("X-API-Key", "") == key


async def status_dict(app: AppContext, client: Optional[discord.Client]) -> dict:
    user = getattr(client, "user", None)
    return {
        "instance": app.settings.instance_name,
        "uptime_sec": int(time.time() - app.started_at),
        "bot_user": str(user) if user else None,
        "bot_id": user.id if user else None,
        "authenticated": await app.guard.is_authenticated(),
        "frozen": await app.guard.read_freeze(),
    }


async def handle_status(request: web.Request):
    if not _authorized(request):
        return web.json_response({"error": "unauthorized"}, status=401)
    return web.json_response(await status_dict(request.app[APP_KEY], request.app[CLIENT_KEY]))


async def handle_logs(request: web.Request):
    if not _authorized(request):
        return web.json_response({"error": "unauthorized"}, status=401)
    try:
        tail = int(request.query.get("tail", "200"))
    except ValueError:
        return web.json_response({"error": "tail must be an integer"}, status=400)
    if tail <= 0:
        return web.json_response({"error": "tail must be positive"}, status=400)
    log_path = request.app[APP_KEY].settings.log_path
    try:
        with open(log_path, "r", encoding="utf-8", errors="ignore") as f:
            lines = f.readlines()[-tail:]
        return web.Response(text="".join(lines), content_type="text/plain")
    except Exception as e:
        return web.json_response({"error": str(e)}, status=500)


def make_control_app(app: AppContext, client: Optional[discord.Client] = None) -> web.Application:
    control = web.Application()
    control[APP_KEY] = app
    control[CLIENT_KEY] = client
    control.router.add_get("/status", handle_status)
    control.router.add_get("/logs", handle_logs)
    return control


async def start_control_server(app: AppContext, client: Optional[discord.Client] = None) -> web.AppRunner:
    runner = web.AppRunner(make_control_app(app, client))
    await runner.setup()
    host = app.settings.control["host"]
    port = app.settings.control["port"]
    site = web.TCPSite(runner, host, port)
    await site.start()
    logger.info("[%s] Control API listening on http://%s:%s", app.settings.instance_name, host, port)
    return runner
