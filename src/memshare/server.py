"""MCP server: memshare — shared memory tools over stdio.

Protocol: JSON-RPC 2.0 over stdio (NDJSON). Requests are handled one at a
time, so store operations never run concurrently.

Usage:
  python -m memshare serve
"""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
import sys

from memshare import __version__
from memshare.memory.errors import StoreError
from memshare.memory.models import MAX_IMPORTANCE, MIN_IMPORTANCE, MemoryType
from memshare.memory.store import MemoryStore
from memshare.tools.memory_tools import get_memory_tools

logger = logging.getLogger(__name__)

# ── Constants ────────────────────────────────────────────────

SERVER_NAME = "memshare"
PROTOCOL_VERSION = "2024-11-05"

# ── Tool definitions ─────────────────────────────────────────

_TYPE_SCHEMA = {"type": "string", "enum": [t.value for t in MemoryType]}
_STRINGS = {"type": "array", "items": {"type": "string"}}
_IMPORTANCE = {"type": "number", "minimum": MIN_IMPORTANCE, "maximum": MAX_IMPORTANCE}
_LIMIT = {"type": "integer", "minimum": 1}
_RELATE_SCHEMA = {
    "type": "object",
    "properties": {"sourceId": {"type": "string"}, "targetIds": _STRINGS},
    "required": ["sourceId", "targetIds"],
}
_TAG_SCHEMA = {
    "type": "object",
    "properties": {"id": {"type": "string"}, "tags": _STRINGS},
    "required": ["id", "tags"],
}
_EMPTY_SCHEMA = {"type": "object", "properties": {}}

TOOLS = [
    {
        "name": "build_memory_store",
        "description": "Build a new memory store in the specified directory",
        "inputSchema": {
            "type": "object",
            "properties": {
                "directory": {"type": "string"},
                "overwrite": {"type": "boolean"},
            },
            "required": ["directory"],
        },
    },
    {
        "name": "create_memory",
        "description": "Create a new memory",
        "inputSchema": {
            "type": "object",
            "properties": {
                "title": {"type": "string"},
                "type": _TYPE_SCHEMA,
                "tags": _STRINGS,
                "related": _STRINGS,
                "importance": _IMPORTANCE,
                "content": {"type": "string"},
            },
            "required": ["title", "type", "content"],
        },
    },
    {
        "name": "update_memory",
        "description": "Update an existing memory",
        "inputSchema": {
            "type": "object",
            "properties": {
                "id": {"type": "string"},
                "title": {"type": "string"},
                "tags": _STRINGS,
                "related": _STRINGS,
                "importance": _IMPORTANCE,
                "content": {"type": "string"},
            },
            "required": ["id"],
        },
    },
    {
        "name": "delete_memory",
        "description": "Delete a memory",
        "inputSchema": {
            "type": "object",
            "properties": {"id": {"type": "string"}},
            "required": ["id"],
        },
    },
    {
        "name": "get_memory",
        "description": "Get a memory by ID and type",
        "inputSchema": {
            "type": "object",
            "properties": {"id": {"type": "string"}, "type": _TYPE_SCHEMA},
            "required": ["id", "type"],
        },
    },
    {
        "name": "search_memories",
        "description": "Search memories by query, type, and tags",
        "inputSchema": {
            "type": "object",
            "properties": {
                "query": {"type": "string"},
                "types": {"type": "array", "items": _TYPE_SCHEMA},
                "tags": _STRINGS,
                "limit": _LIMIT,
            },
            "required": ["query"],
        },
    },
    {
        "name": "list_memories",
        "description": "List memories with optional filtering by type and tags",
        "inputSchema": {
            "type": "object",
            "properties": {
                "types": {"type": "array", "items": _TYPE_SCHEMA},
                "tags": _STRINGS,
                "limit": _LIMIT,
            },
        },
    },
    {"name": "add_tags", "description": "Add tags to a memory", "inputSchema": _TAG_SCHEMA},
    {"name": "remove_tags", "description": "Remove tags from a memory", "inputSchema": _TAG_SCHEMA},
    {
        "name": "relate_memories",
        "description": "Create relationships between memories",
        "inputSchema": _RELATE_SCHEMA,
    },
    {
        "name": "unrelate_memories",
        "description": "Remove relationships between memories",
        "inputSchema": _RELATE_SCHEMA,
    },
    {"name": "rebuild_index", "description": "Rebuild the search index", "inputSchema": _EMPTY_SCHEMA},
    {
        "name": "whats_new",
        "description": "See what's new in the current version and get update information",
        "inputSchema": _EMPTY_SCHEMA,
    },
    {
        "name": "check_updates",
        "description": "Check for newer versions and see update information",
        "inputSchema": _EMPTY_SCHEMA,
    },
]

# ── JSON-RPC 2.0 helpers ─────────────────────────────────────


def jsonrpc_result(req_id, result):
    return {"jsonrpc": "2.0", "id": req_id, "result": result}


def jsonrpc_error(req_id, code, message):
    return {"jsonrpc": "2.0", "id": req_id, "error": {"code": code, "message": message}}


def _text(text: str, is_error: bool = False) -> dict:
    result = {"content": [{"type": "text", "text": text}]}
    if is_error:
        result["isError"] = True
    return result


# ── Request handler ──────────────────────────────────────────


class MemoryServer:
    """Dispatch MCP requests to the memory tools of one store."""

    def __init__(self, store: MemoryStore) -> None:
        self.store = store
        self.tools = get_memory_tools(store)

    def call_tool(self, name: str, arguments: dict) -> dict:
        tool = self.tools.get(name)
        if tool is None:
            return _text(f"Unknown tool: {name}", is_error=True)
        if not isinstance(arguments, dict):
            return _text(f"Error: No arguments provided for tool {name}", is_error=True)
        try:
            inspect.signature(tool).bind(**arguments)
        except TypeError as e:
            return _text(f"Error: invalid arguments for {name}: {e}", is_error=True)
        try:
            return _text(tool(**arguments))
        except StoreError as e:
            logger.info("Tool %s failed (%s): %s", name, e.kind, e)
            return _text(f"Error: {e}", is_error=True)

    async def handle_request(self, req: dict) -> dict | None:
        req_id = req.get("id")
        method = req.get("method", "")

        # Notifications carry no id and get no response
        if req_id is None:
            if method == "notifications/initialized":
                logger.info("Client initialized")
            return None

        if method == "initialize":
            return jsonrpc_result(req_id, {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {"tools": {"listChanged": True}},
                "serverInfo": {"name": SERVER_NAME, "version": __version__},
            })

        if method == "tools/list":
            return jsonrpc_result(req_id, {"tools": TOOLS})

        if method == "tools/call":
            params = req.get("params", {})
            tool_name = params.get("name", "")
            args = params.get("arguments", {})
            # Store calls are synchronous; the read loop awaits nothing else meanwhile.
            return jsonrpc_result(req_id, self.call_tool(tool_name, args))

        return jsonrpc_error(req_id, -32601, f"Method not found: {method}")


# ── Stdio transport (NDJSON) ─────────────────────────────────


async def serve(store: MemoryStore) -> None:
    server = MemoryServer(store)
    logger.info("memshare %s serving %s on stdio", __version__, store.root)

    reader = asyncio.StreamReader()
    protocol = asyncio.StreamReaderProtocol(reader)
    await asyncio.get_event_loop().connect_read_pipe(lambda: protocol, sys.stdin)

    while True:
        line = await reader.readline()
        if not line:
            break
        line = line.decode("utf-8").strip()
        if not line:
            continue

        try:
            req = json.loads(line)
        except json.JSONDecodeError as e:
            logger.warning("Parse error: %s", e)
            sys.stdout.write(json.dumps(jsonrpc_error(None, -32700, f"Parse error: {e}")) + "\n")
            sys.stdout.flush()
            continue

        if not isinstance(req, dict):
            response = jsonrpc_error(None, -32600, "Invalid request")
        else:
            logger.debug("<- %s", req.get("method", "?"))
            try:
                response = await server.handle_request(req)
            except Exception as e:
                logger.exception("Handler error")
                response = jsonrpc_error(req.get("id"), -32603, f"Internal error: {e}")
        if response:
            sys.stdout.write(json.dumps(response, ensure_ascii=False) + "\n")
            sys.stdout.flush()
