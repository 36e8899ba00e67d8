"""Entry point: python -m memshare [serve|rebuild|build DIR [--overwrite]]

- No args / "serve": MCP server on stdio for the resolved memory directory
- "rebuild":         Rebuild the search index of the resolved memory directory
- "build":           Initialize a fresh memory store in DIR
"""

from __future__ import annotations

import asyncio
import logging
import sys

from memshare.config import MemshareConfig, load_config
from memshare.memory.errors import StoreError


def _setup_logging(level: str) -> None:
    # stdout carries the protocol; logs go to stderr.
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def _describe(config: MemshareConfig) -> None:
    logger = logging.getLogger("memshare")
    if config.project:
        logger.info("Found configuration at: %s", config.project.config_file)
        logger.info("Using project memory directory: %s", config.memory_dir)
        if config.project.description:
            logger.info("Description: %s", config.project.description)
    else:
        logger.info("Using global memory directory: %s", config.memory_dir)


def _run_serve(config: MemshareConfig) -> None:
    from memshare.memory.store import MemoryStore
    from memshare.server import serve

    store = MemoryStore(config.memory_dir)
    try:
        asyncio.run(serve(store))
    except KeyboardInterrupt:
        pass


def _run_rebuild(config: MemshareConfig) -> None:
    from memshare.memory.store import MemoryStore

    MemoryStore(config.memory_dir).rebuild_index()
    print(f"Search index rebuilt for {config.memory_dir}")


def _run_build(args: list[str]) -> None:
    from memshare.memory.store import build_memory_store

    paths = [a for a in args if not a.startswith("--")]
    if len(paths) != 1:
        _usage()
    build_memory_store(paths[0], overwrite="--overwrite" in args)
    print(f"Memory store successfully built in directory: {paths[0]}")


def _usage() -> None:
    print("Usage: python -m memshare [serve|rebuild|build DIR [--overwrite]]")
    print("  serve    — MCP server on stdio (default)")
    print("  rebuild  — Rebuild the search index")
    print("  build    — Initialize a fresh memory store in DIR")
    sys.exit(1)


def main() -> None:
    cmd = sys.argv[1] if len(sys.argv) > 1 else "serve"
    try:
        config = load_config()
    except ValueError as e:
        print(f"Error: invalid project configuration: {e}", file=sys.stderr)
        sys.exit(1)
    _setup_logging(config.log_level)
    _describe(config)

    try:
        if cmd == "serve":
            _run_serve(config)
        elif cmd == "rebuild":
            _run_rebuild(config)
        elif cmd == "build":
            _run_build(sys.argv[2:])
        else:
            _usage()
    except StoreError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
