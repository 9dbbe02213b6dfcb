"""Webhook HTTP server using aiohttp."""

from __future__ import annotations

from aiohttp import web

from jirabridge.config import WebhookServerConfig
from jirabridge.utils.logging import get_logger
from jirabridge.webhooks.ingress import WebhookIngress

log = get_logger(__name__)


class WebhookServer:
    """Receives Jira webhooks on a single endpoint and hands them to the ingress."""

    def __init__(
        self,
        config: WebhookServerConfig,
        ingress: WebhookIngress,
        secret: str = "",
    ) -> None:
        self._config = config
        self._ingress = ingress
        self._secret = secret
        self._runner: web.AppRunner | None = None

    @property
    def path(self) -> str:
        path = self._config.path
        return path if path.startswith("/") else f"/{path}"

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        if not self._secret:
            log.warning(
                "webhook_endpoint_no_secret",
                path=self.path,
                msg="No webhook secret configured; requests are accepted without signature verification.",
            )
        app = self.build_app()
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._config.bind, self._config.port)
        await site.start()
        log.info(
            "webhook_server_started",
            bind=self._config.bind,
            port=self._config.port,
            path=self.path,
        )

    async def stop(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
        log.info("webhook_server_stopped")

    # ------------------------------------------------------------------
    # App construction
    # ------------------------------------------------------------------

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post(self.path, self._handle_webhook)
        app.router.add_get("/health", self._handle_health)
        return app

    # ------------------------------------------------------------------
    # Request handling
    # ------------------------------------------------------------------

    async def _handle_webhook(self, request: web.Request) -> web.Response:
        body = await request.read()
        result = await self._ingress.handle(body, request.headers, self._secret)
        return web.Response(status=result.status, text=result.text)

    async def _handle_health(self, request: web.Request) -> web.Response:
        return web.Response(status=200, text="OK")
