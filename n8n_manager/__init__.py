"""MCP server exposing the n8n workflow automation API as agent tools."""

__version__ = "1.0.0"
