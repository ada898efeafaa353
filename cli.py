"""Render an analysis result JSON file into a PDF report."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from api.services.analysis_pdf.generator import ReportGenerationError, generate


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("result", help="Analysis result JSON file")
    parser.add_argument("out_dir", help="Directory the PDF is written to")
    parser.add_argument("--title", required=True, help="Report title")
    parser.add_argument("--author", default=None, help="Name printed on the cover")
    parser.add_argument("--category", default=None, help="Analysis category, e.g. compatibility")
    parser.add_argument("--subtree", default=None, help="Captured view JSON used when the result has no sections")
    parser.add_argument("--locale", default=None, choices=["tr", "en"])
    return parser.parse_args(argv)


def main(argv=None) -> int:
    load_dotenv()
    logging.basicConfig(level=logging.INFO)
    args = parse_args(argv)

    result = json.loads(Path(args.result).read_text(encoding="utf-8"))
    subtree = json.loads(Path(args.subtree).read_text(encoding="utf-8")) if args.subtree else None

    async def author() -> str:
        return args.author or ""

    try:
        document = asyncio.run(
            generate(result, args.title, author, subtree, category=args.category, locale=args.locale)
        )
    except ReportGenerationError as exc:
        print(f"PDF generation failed: {exc}", file=sys.stderr)
        return 1

    out_dir = Path(args.out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / document.suggested_filename
    out_path.write_bytes(document.blob)
    print(f"Wrote {document.page_count}-page report → {out_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
