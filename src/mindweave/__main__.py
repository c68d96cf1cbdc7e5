"""cli entrypoint for mindweave."""

import argparse
import json
import logging
from pathlib import Path

from rich.console import Console

from .core.engine import MindMapEngine
from .core.models import Document
from .outline import render_outline


def main():
    parser = argparse.ArgumentParser(
        description="mindweave - mind map editor core"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="run the api server")
    serve.add_argument("--host", default="127.0.0.1", help="host to bind")
    serve.add_argument("--port", "-p", type=int, default=8000, help="port to bind")
    serve.add_argument("--title", "-t", help="create a document with this root topic on startup")
    serve.add_argument(
        "--direction",
        choices=["horizontal", "vertical", "free"],
        default="horizontal",
        help="layout direction for the startup document",
    )

    outline = sub.add_parser("outline", help="print a document json file as a laid-out outline")
    outline.add_argument("document", help="path to a document json file")
    outline.add_argument(
        "--direction",
        choices=["horizontal", "vertical"],
        help="re-lay out in this direction before printing",
    )
    outline.add_argument("--no-geometry", action="store_true", help="hide positions and sizes")

    args = parser.parse_args()

    if args.command == "serve":
        from .api.server import serve as run_server

        run_server(args.host, args.port, args.title, args.direction, args.verbose)
        return

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    with open(Path(args.document)) as f:
        document = Document.from_dict(json.load(f))

    engine = MindMapEngine()
    document = engine.load_document(document, relayout=True)
    if args.direction:
        document = engine.update_document(document, layout_direction=args.direction)

    Console().print(render_outline(document, show_geometry=not args.no_geometry))


if __name__ == "__main__":
    main()
