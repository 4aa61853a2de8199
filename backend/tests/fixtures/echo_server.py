"""Minimal stdio tool server used by the transport tests."""

import sys

from mcp.server.fastmcp import FastMCP

mcp = FastMCP("echo")


@mcp.tool()
def echo(text: str) -> str:
    """Return the text unchanged."""
    return text


@mcp.tool()
def add(a: int, b: int) -> int:
    """Add two integers."""
    return a + b


@mcp.tool()
def fail(reason: str) -> str:
    """Always raise."""
    raise ValueError(reason)


@mcp.resource("note://greeting")
def greeting() -> str:
    return "hello"


if __name__ == "__main__":
    print("echo server starting", file=sys.stderr)
    mcp.run()
