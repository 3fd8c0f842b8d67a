#!/usr/bin/env python3
import argparse
import asyncio
import json
import sys
from pathlib import Path

# Allow running without installing the package
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = PROJECT_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from reddit_comment_extractor.comment_tree import (  # noqa: E402
    ThreadView,
    comment_listing,
    count_nodes,
    normalize,
)
from reddit_comment_extractor.config import (  # noqa: E402
    DEFAULT_SORT_BY,
    DEFAULT_SORT_ORDER,
    EXPORT_DIR,
    MAX_COMMENT_DEPTH,
)
from reddit_comment_extractor.exporter import (  # noqa: E402
    EXPORT_FORMATS,
    ExportError,
    export_rows,
    resolve_export_path,
)
from reddit_comment_extractor.models import SORT_KEYS, SORT_ORDERS, InvalidInput, NormalizeStats  # noqa: E402
from reddit_comment_extractor.reddit_client import RedditClient, RedditFetchError  # noqa: E402
from reddit_comment_extractor.render import render_tree, sort_label  # noqa: E402


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="Extract a Reddit thread's comment tree, sort it, and export it (XLSX/CSV)."
    )
    g = p.add_mutually_exclusive_group(required=True)
    g.add_argument("--url", type=str, help="Reddit thread URL, e.g. https://www.reddit.com/r/x/comments/<id>/<slug>/")
    g.add_argument("--input-file", type=str, help="Saved thread JSON (the payload of <thread>.json).")

    p.add_argument("--sort-by", choices=SORT_KEYS, default=DEFAULT_SORT_BY, help="Sort comments by time or score.")
    p.add_argument("--order", choices=SORT_ORDERS, default=DEFAULT_SORT_ORDER, help="asc or desc (default: desc).")
    p.add_argument("--max-depth", type=int, default=MAX_COMMENT_DEPTH, help="Stop descending below this reply depth.")

    p.add_argument("--export", action="store_true", help="Write the sorted comments to a spreadsheet.")
    p.add_argument("--format", choices=EXPORT_FORMATS, default=None, help="Export file type (default: xlsx, or the --output suffix).")
    p.add_argument("--output", type=str, default="", help="Export file path, .xlsx or .csv (implies --export).")
    p.add_argument("--output-dir", type=str, default=EXPORT_DIR, help="Directory for generated export files.")
    p.add_argument("--quiet", action="store_true", help="Do not print the comment tree.")
    args = p.parse_args(argv)

    args.export_path = None
    if args.export or args.output:
        try:
            args.export_path = resolve_export_path(args.output, args.format, Path(args.output_dir))
        except ExportError as e:
            p.error(str(e))
    return args


async def load_raw_comments(args, log) -> list:
    if args.input_file:
        payload = json.loads(Path(args.input_file).read_text(encoding="utf-8"))
        log(f"loaded thread payload from {args.input_file}")
        return comment_listing(payload)

    async with RedditClient(log_callback=log) as client:
        return await client.fetch_comments(args.url)


async def main(argv=None):
    args = parse_args(argv)

    def log(msg: str, level: str = "info"):
        prefix = {"info": "[*]", "success": "[+]", "warning": "[!]", "error": "[x]"}.get(level, "[*]")
        print(f"{prefix} {msg}")

    try:
        raw_comments = await load_raw_comments(args, log)
        stats = NormalizeStats()
        comments = normalize(raw_comments, max_depth=args.max_depth, stats=stats)
    except (RedditFetchError, InvalidInput, ValueError, OSError) as e:
        raise SystemExit(f"[x] failed to load comments: {e}")

    log(
        f"comments kept={stats.kept} dropped subtrees={stats.dropped} top-level={len(comments)}",
        "success",
    )
    if stats.truncated:
        log(f"{stats.truncated} reply subtrees cut at depth {args.max_depth}", "warning")
    if not comments:
        log("no comments found", "warning")
        return

    view = ThreadView(comments, sort_by=args.sort_by, order=args.order)
    log(f"sorted: {sort_label(view.sort_by, view.order)} ({count_nodes(view.displayed)} comments)")

    if not args.quiet:
        print()
        print(render_tree(view.displayed))
        print()

    if args.export_path is not None:
        path = args.export_path
        try:
            rows = view.export_rows()
            export_rows(rows, path)
        except (ExportError, OSError) as e:
            raise SystemExit(f"[x] export failed: {e}")
        log(f"exported {len(rows)} comments to {path}", "success")


if __name__ == "__main__":
    asyncio.run(main())
