"""Command-line access to the extraction pipeline.

Usage:
    python -m deepcite.cli scrape https://example.com
    python -m deepcite.cli scrape https://a.example https://b.example --output text
    python -m deepcite.cli parse report.pdf
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path


def _setup_logging(verbose: bool = False):
    from deepcite.core.logging_config import configure_logging

    configure_logging(
        log_format="text",
        log_level="DEBUG" if verbose else "WARNING",
        stream=sys.stderr,
    )


async def _cmd_scrape(args) -> int:
    from deepcite.core.cache import close_scrape_cache
    from deepcite.middleware.request_id import bound_request_id
    from deepcite.services.scraper import collect_urls, scrape_many

    urls = collect_urls(urls=args.urls, limit=len(args.urls))
    if not urls:
        print("No URLs to scrape", file=sys.stderr)
        return 2

    try:
        with bound_request_id():
            results = await scrape_many(urls)
    finally:
        await close_scrape_cache()

    if args.output == "text":
        for result in results:
            print(f"--- {result.url} [{result.scraper_used}] ---")
            if result.scrape_error:
                print(f"ERROR: {result.scrape_error}")
            else:
                print(result.content[: args.max_chars])
            print()
    else:
        payload = [r.model_dump(by_alias=True) for r in results]
        print(json.dumps(payload if len(payload) > 1 else payload[0], indent=2, ensure_ascii=False))

    return 0 if all(not r.scrape_error for r in results) else 1


async def _cmd_parse(args) -> int:
    from deepcite.schemas.document import UnrecognizedDocument
    from deepcite.services.document import parse_document

    path = Path(args.file)
    if not path.is_file():
        print(f"File not found: {path}", file=sys.stderr)
        return 2

    doc = await parse_document(path.read_bytes(), path.name)
    if isinstance(doc, UnrecognizedDocument):
        print(f"Unrecognized document type: {path.name}", file=sys.stderr)
        return 2

    if args.output == "text":
        if doc.error:
            print(f"ERROR: {doc.error}")
        else:
            print(doc.content[: args.max_chars])
    else:
        print(json.dumps(doc.model_dump(by_alias=True, exclude_none=True), indent=2, ensure_ascii=False))

    return 1 if doc.error else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="deepcite",
        description="Extract readable text from URLs and documents.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--output", choices=["json", "text"], default="json")
    parser.add_argument(
        "--max-chars", type=int, default=2000, help="Content shown per item in text output"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_scrape = sub.add_parser("scrape", help="Scrape one or more URLs")
    p_scrape.add_argument("urls", nargs="+")

    p_parse = sub.add_parser("parse", help="Parse a local PDF or DOCX file")
    p_parse.add_argument("file")

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    _setup_logging(args.verbose)

    commands = {"scrape": _cmd_scrape, "parse": _cmd_parse}
    return asyncio.run(commands[args.command](args))


if __name__ == "__main__":
    sys.exit(main())
