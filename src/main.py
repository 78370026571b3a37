#!/usr/bin/env python3
"""
Merchantry MCP Server - Main entry point
"""
from merchantry_server import create_merchantry_server

# Create server instance for mcp command
mcp = create_merchantry_server()


def main():
    """Run the Merchantry MCP server with configurable transport."""
    server = create_merchantry_server()
    config = server.config

    transport = config.transport.lower()

    if transport == "stdio":
        # Default stdio transport for CLI/desktop clients
        server.run()
    elif transport == "sse":
        server.logger.info("Starting Merchantry SSE server", host=config.host, port=config.port)
        server.run(transport="sse", host=config.host, port=config.port)
    elif transport in ("http", "streamable-http"):
        server.logger.info("Starting Merchantry HTTP server", host=config.host, port=config.port)
        server.run(transport="streamable-http", host=config.host, port=config.port)
    else:
        raise ValueError(f"Unknown transport type: {transport}. Supported: stdio, sse, streamable-http")


if __name__ == "__main__":
    main()
