"""
zotasigner/intercept/proxy.py
Runs mitmproxy in the background with the signing addon installed.
"""

import asyncio
import logging
import socket
from typing import Optional

from mitmproxy import options
from mitmproxy.tools.dump import DumpMaster

from zotasigner.controller import ZotaController
from zotasigner.intercept.addon import ZotaAddon

logger = logging.getLogger(__name__)


class ZotaInterceptor:
    """
    Manages the background mitmproxy instance.
    """
    def __init__(self, controller: ZotaController, host: str = "127.0.0.1", port: int = 0):
        """
        Args:
            controller: Owner of profiles and signing flags
            host: Interface to listen on
            port: Port to listen on. 0 means find a free port dynamically.
        """
        self.controller = controller
        self.host = host
        self.port = port if port > 0 else self._find_free_port(host)
        self.master: Optional[DumpMaster] = None
        self._task: Optional[asyncio.Task] = None

    @staticmethod
    def _find_free_port(host: str) -> int:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.bind((host, 0))
            s.listen(1)
            return s.getsockname()[1]

    async def start(self):
        """Start the proxy as an asyncio task."""
        opts = options.Options(listen_host=self.host, listen_port=self.port)
        self.master = DumpMaster(opts, with_termlog=False, with_dumper=False)
        self.master.addons.add(ZotaAddon(self.controller))

        active = self.controller.active_profile()
        logger.info(
            f"[Zota] Signing proxy listening on {self.host}:{self.port} "
            f"(active profile: {active.name if active else 'none'})"
        )
        self._task = asyncio.create_task(self._run_master())

    async def _run_master(self):
        try:
            await self.master.run()
        except Exception as e:
            logger.error(f"[Zota] Proxy error: {e}")

    async def wait(self):
        if self._task is not None:
            await self._task

    def stop(self):
        """Shutdown the proxy gracefully."""
        if self.master:
            self.master.shutdown()
        if self._task and not self._task.done():
            self._task.cancel()
        logger.info("[Zota] Signing proxy stopped.")
