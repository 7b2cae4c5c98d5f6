"""
Pytest configuration and shared fixtures for chest tests.
"""

import json
from typing import Callable, List

import pytest
import pytest_asyncio
from aiohttp import WSMsgType, web
from aiohttp.test_utils import TestServer

from chest.database import Database


@pytest.fixture
def db(tmp_path):
    database = Database(f"sqlite:///{tmp_path / 'events.db'}")
    database.create_tables()
    yield database
    database.dispose()


@pytest_asyncio.fixture
async def relay_server():
    """Start a scripted websocket relay.

    `respond(req, n)` returns the frames sent back for the n-th REQ the
    server has seen. The connection is closed by the server once
    `close_after` REQs have arrived (0 keeps it open).
    """
    servers: List[TestServer] = []

    async def start(respond: Callable[[list, int], List[str]], close_after: int = 1):
        requests: List[list] = []

        async def handler(request):
            ws = web.WebSocketResponse()
            await ws.prepare(request)
            async for msg in ws:
                if msg.type != WSMsgType.TEXT:
                    continue
                req = json.loads(msg.data)
                requests.append(req)
                for frame in respond(req, len(requests)):
                    await ws.send_str(frame)
                if close_after and len(requests) >= close_after:
                    await ws.close()
            return ws

        async def plain(request):
            return web.Response(text="not a relay")

        app = web.Application()
        app.router.add_get("/", handler)
        app.router.add_get("/plain", plain)
        server = TestServer(app)
        await server.start_server()
        servers.append(server)
        return f"ws://{server.host}:{server.port}", requests

    yield start
    for server in servers:
        await server.close()
