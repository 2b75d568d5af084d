#!/usr/bin/env python3
"""AccessGuard command line: scan pages, run the weekly job, create tables."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from rich.panel import Panel

from accessguard.config import get_settings
from accessguard.core.terminal import console, print_scan_result, print_summary_table
from accessguard.services.scanner import ScanError, scan_url
from accessguard.utils.validators import InvalidURLError


def _read_urls(args: argparse.Namespace) -> list[str]:
    urls = list(args.urls)
    if args.file:
        filepath = Path(args.file)
        if not filepath.exists():
            console.print(f"[red]Error: File '{args.file}' not found[/red]")
            sys.exit(1)
        urls.extend(
            line.strip()
            for line in filepath.read_text(encoding="utf-8").splitlines()
            if line.strip() and not line.strip().startswith("#")
        )
    return urls


async def _scan_all(urls: list[str]) -> list[tuple[str, object, str | None]]:
    results = []
    for url in urls:
        try:
            result = await scan_url(url)
        except (InvalidURLError, ScanError) as e:
            results.append((url, None, str(e)))
            continue
        results.append((url, result, None))
    return results


def cmd_scan(args: argparse.Namespace) -> int:
    urls = _read_urls(args)
    if not urls:
        console.print("[red]Error: No URLs to scan[/red]")
        return 1

    if not args.json:
        console.print(
            Panel(
                f"[bold]{get_settings().APP_NAME}[/bold] - WCAG 2.1 AA scan\n"
                f"Total URLs: {len(urls)}",
                border_style="cyan",
            )
        )

    results = asyncio.run(_scan_all(urls))

    if args.json:
        payload = [
            result.model_dump(mode="json") if result else {"url": url, "error": error}
            for url, result, error in results
        ]
        print(json.dumps(payload[0] if len(payload) == 1 else payload, indent=2, ensure_ascii=False))
    else:
        for url, result, error in results:
            if result is None:
                console.print(f"[red]✗ {url}: {error}[/red]")
            else:
                print_scan_result(result)
        if len(results) > 1:
            console.print("\n")
            print_summary_table(results)

    if args.output:
        output_path = Path(args.output)
        output_path.write_text(
            json.dumps(
                [r.model_dump(mode="json") for _, r, _ in results if r is not None],
                indent=2,
                ensure_ascii=False,
            ),
            encoding="utf-8",
        )
        console.print(f"\n[green]Results saved to {args.output}[/green]")

    return 0 if all(result is not None for _, result, _ in results) else 1


async def _weekly_scan() -> dict:
    from accessguard.services.weekly_scan import run_weekly_scan
    from accessguard.utils.db import async_session_maker

    async with async_session_maker() as session:
        return await run_weekly_scan(session)


def cmd_weekly_scan(args: argparse.Namespace) -> int:
    summary = asyncio.run(_weekly_scan())
    console.print(
        Panel(
            f"{summary['message']}\n"
            f"Users: {summary['users']}  |  Scanned: {summary['scanned']}  |  "
            f"Errors: {summary['errors']}",
            title="[bold]Weekly scan[/bold]",
            border_style="red" if summary["errors"] else "green",
        )
    )
    return 0


def cmd_init_db(args: argparse.Namespace) -> int:
    from accessguard.utils.db import create_all

    asyncio.run(create_all())
    console.print(f"[green]✓[/green] Tables created ({get_settings().database_type})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="accessguard",
        description="AccessGuard - WCAG 2.1 AA accessibility scanner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  accessguard scan https://example.com\n"
            "  accessguard scan -f urls.txt -o results.json\n"
            "  accessguard scan example.com --json\n"
            "  accessguard weekly-scan\n"
            "  accessguard init-db\n"
        ),
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug logging")
    subparsers = parser.add_subparsers(dest="command")

    scan = subparsers.add_parser("scan", help="Scan one or more pages")
    scan.add_argument("urls", nargs="*", help="URLs to scan")
    scan.add_argument("-f", "--file", help="File with one URL per line")
    scan.add_argument("-o", "--output", help="Save results to a JSON file")
    scan.add_argument("--json", action="store_true", help="Print raw JSON instead of a report")
    scan.set_defaults(func=cmd_scan)

    weekly = subparsers.add_parser("weekly-scan", help="Rescan all paid users' sites and email summaries")
    weekly.set_defaults(func=cmd_weekly_scan)

    init_db = subparsers.add_parser("init-db", help="Create database tables")
    init_db.set_defaults(func=cmd_init_db)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not getattr(args, "func", None):
        parser.print_help()
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
