"""Integration tests: a real stdio tool server spawned as a child process."""
from __future__ import annotations

import asyncio
import sys
import unittest
from pathlib import Path

from src.errors import ServerConnectionError, ToolExecutionError
from src.mcp_hub import ConnectionStatus, McpHub, ServerConfig, TransportConnection

ECHO_SERVER = Path(__file__).parent / "fixtures" / "echo_server.py"
TIMEOUT = 30


def echo_config(**kwargs) -> ServerConfig:
    return ServerConfig(command=sys.executable, args=[str(ECHO_SERVER)], timeout=10, **kwargs)


class TestTransportConnection(unittest.IsolatedAsyncioTestCase):
    async def test_handshake_call_and_close(self) -> None:
        closed = asyncio.Event()
        stderr: list[str] = []
        transport = TransportConnection(
            "echo", echo_config(), on_close=closed.set, on_stderr=stderr.append
        )
        tools = await asyncio.wait_for(transport.start(), TIMEOUT)
        try:
            self.assertEqual(sorted(t.name for t in tools), ["add", "echo", "fail"])
            self.assertTrue(transport.is_connected)

            result = await asyncio.wait_for(transport.call_tool("echo", {"text": "hi"}, timeout=10), TIMEOUT)
            self.assertFalse(result.isError)
            self.assertEqual(result.content[0].text, "hi")

            resource = await asyncio.wait_for(transport.read_resource("note://greeting"), TIMEOUT)
            self.assertEqual(resource.contents[0].text, "hello")
        finally:
            await transport.close()
        self.assertFalse(transport.is_connected)
        self.assertFalse(closed.is_set())
        self.assertIn("echo server starting", stderr)

    async def test_missing_command(self) -> None:
        transport = TransportConnection("ghost", ServerConfig(command="/nonexistent/toolpilot-server"))
        with self.assertRaises(ServerConnectionError) as ctx:
            await asyncio.wait_for(transport.start(), TIMEOUT)
        self.assertEqual(ctx.exception.server_name, "ghost")

    async def test_process_exiting_during_handshake(self) -> None:
        config = ServerConfig(command=sys.executable, args=["-c", "import sys; sys.stderr.write('boom\\n')"])
        transport = TransportConnection("quitter", config)
        with self.assertRaises(ServerConnectionError) as ctx:
            await asyncio.wait_for(transport.start(), TIMEOUT)
        self.assertIn("quitter", str(ctx.exception))


class TestHubWithRealServer(unittest.IsolatedAsyncioTestCase):
    async def test_call_through_hub(self) -> None:
        hub = McpHub({"echo": echo_config(), "ghost": ServerConfig(command="/nonexistent/x")}, auto_approve_tools=True)
        await asyncio.wait_for(hub.initialize_servers(), TIMEOUT)
        try:
            self.assertEqual(hub.find_connection("echo").status, ConnectionStatus.CONNECTED)
            self.assertEqual(hub.find_connection("ghost").status, ConnectionStatus.DISCONNECTED)
            self.assertIsNotNone(hub.catalog.get_server_tool_documentation("echo", "add"))

            result = await asyncio.wait_for(hub.call_tool("echo", "add", {"a": 2, "b": 3}), TIMEOUT)
            self.assertTrue(result.success)
            self.assertEqual(result.content[0].text, "5")

            failed = await asyncio.wait_for(hub.call_tool("echo", "fail", {"reason": "nope"}), TIMEOUT)
            self.assertFalse(failed.success)
            self.assertIn("nope", failed.error)

            with self.assertRaises(ToolExecutionError):
                await hub.call_tool("ghost", "anything")
        finally:
            await hub.dispose()


if __name__ == "__main__":
    unittest.main()
