"""
Command-line entry point.

    python -m workflow_plugin_github             serve the webhook receiver
    python -m workflow_plugin_github manifest    print the plugin manifest
"""

import argparse
import sys
from typing import Optional, Sequence

import uvicorn

from workflow_plugin_github.config.settings import get_settings
from workflow_plugin_github.plugin import GitHubPlugin


def _serve(args: argparse.Namespace) -> int:
    settings = get_settings()
    uvicorn.run(
        "workflow_plugin_github.api.main:create_app",
        factory=True,
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_level=settings.log_level.lower(),
    )
    return 0


def _manifest(args: argparse.Namespace) -> int:
    print(GitHubPlugin().manifest().model_dump_json(indent=2))
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="workflow-plugin-github",
        description="GitHub integration plugin for the workflow engine",
    )
    parser.set_defaults(handler=_serve, host=None, port=None)
    commands = parser.add_subparsers(dest="command")

    serve = commands.add_parser("serve", help="run the webhook receiver (default)")
    serve.add_argument("--host", help="bind address (default: HOST setting)")
    serve.add_argument("--port", type=int, help="bind port (default: PORT setting)")
    serve.set_defaults(handler=_serve)

    manifest = commands.add_parser("manifest", help="print the plugin manifest as JSON")
    manifest.set_defaults(handler=_manifest)

    args = parser.parse_args(argv)
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
