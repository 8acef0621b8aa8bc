"""rndbg CLI entry point."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from typing import List

from .errors import ScriptImportError
from .importer import ImporterConfig, ScriptImporter

LOG = logging.getLogger("rndbg.cli")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Stage React Native debug scripts from the packager")
    parser.add_argument("--address", help="Packager address (default localhost or RNDBG_PACKAGER_ADDRESS)")
    parser.add_argument("--port", type=int, help="Packager port (default 8081 or RCT_METRO_PORT)")
    parser.add_argument("--storage", help="Local staging directory (default RNDBG_STORAGE or a temp dir)")
    parser.add_argument("--remote-root", help="Source path prefix as seen by the packager")
    parser.add_argument("--local-root", help="Workspace path replacing --remote-root in source maps")
    parser.add_argument("--project-root", default=os.getcwd(), help="React Native project root")
    parser.add_argument("--log-level", default=os.environ.get("RNDBG_LOG", "INFO"), help="Logging level (default INFO)")
    sub = parser.add_subparsers(dest="command", required=True)

    app = sub.add_parser("app-script", help="Download the app bundle and its source map")
    app.add_argument("url", help="Bundle URL, e.g. http://localhost:8081/index.bundle?platform=ios")

    worker = sub.add_parser("debugger-worker", help="Download the debugger worker and its map")
    worker.add_argument(
        "--worker-url-path",
        help="Path placed before debuggerWorker.js; an empty value is allowed",
    )
    return parser


def build_importer(args: argparse.Namespace) -> ScriptImporter:
    config = ImporterConfig.from_env(
        packager_address=args.address,
        packager_port=args.port,
        storage_path=args.storage,
        remote_root=args.remote_root,
        local_root=args.local_root,
    )
    return ScriptImporter(config, logger=logging.getLogger("rndbg.importer"))


async def _run(importer: ScriptImporter, args: argparse.Namespace) -> int:
    if args.command == "app-script":
        script = await importer.download_app_script(args.url, args.project_root)
        print(script.filepath)
        return 0
    await importer.download_debugger_worker(
        importer.config.storage_path,
        args.project_root,
        args.worker_url_path,
    )
    print(importer.config.storage_path)
    return 0


def main(argv: List[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.log_level)
    try:
        importer = build_importer(args)
        return asyncio.run(_run(importer, args))
    except (ScriptImportError, ValueError) as exc:
        LOG.debug("command failed", exc_info=True)
        print(f"Command '{args.command}' failed: {exc}")
        return 1
    except KeyboardInterrupt:
        print()
        return 130
