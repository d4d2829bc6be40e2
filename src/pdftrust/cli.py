"""Command-line interface for pdftrust."""

import argparse
import json
import logging
import sys
from pathlib import Path

from . import __version__
from .batch import Batch
from .core import process
from .document import PdfTrustError, extract_text, run_operation
from .mutate import (
    INFO_FIELDS,
    compress_pdf,
    convert_to_pdfa,
    modify_metadata,
    output_filename,
    sanitize_metadata,
    template_patch,
    watermark_pdf,
)
from .quality import analyze_ats, analyze_quality
from .tables import METADATA_TEMPLATES, REPORT_FILENAME

logger = logging.getLogger("pdftrust")


def _print_json(data) -> None:
    print(json.dumps(data, indent=2))


def _write_output(operation: str, source: str, data: bytes, output: str | None) -> Path:
    path = Path(source)
    target = Path(output) if output else path.with_name(output_filename(operation, path.name))
    target.write_bytes(data)
    logger.info("Wrote %s", target)
    print(target)
    return target


def _cmd_analyze(args: argparse.Namespace) -> int:
    _print_json(process(args.file))
    return 0


def _cmd_ats(args: argparse.Namespace) -> int:
    job_description = args.job
    if args.job_file:
        job_description = Path(args.job_file).read_text()
    _print_json(analyze_ats(extract_text(args.file), job_description))
    return 0


def _cmd_quality(args: argparse.Namespace) -> int:
    _print_json(analyze_quality(args.file))
    return 0


def _cmd_edit(args: argparse.Namespace) -> int:
    patch = dict(template_patch(args.template)) if args.template else {}
    for name in INFO_FIELDS:
        value = getattr(args, name)
        if value is not None:
            patch[name] = value

    data = run_operation("modify", args.file, modify_metadata, args.file, patch)
    _write_output("modify", args.file, data, args.output)
    return 0


def _cmd_sanitize(args: argparse.Namespace) -> int:
    status = 0
    for file in args.files:
        try:
            data = run_operation("sanitize", file, sanitize_metadata, file)
        except PdfTrustError as e:
            print(f"Error: {e}", file=sys.stderr)
            status = 1
            continue
        _write_output("sanitize", file, data, None)
    return status


def _cmd_watermark(args: argparse.Namespace) -> int:
    data = run_operation("watermark", args.file, watermark_pdf, args.file, args.text)
    _write_output("watermark", args.file, data, args.output)
    return 0


def _cmd_compress(args: argparse.Namespace) -> int:
    data = run_operation("compress", args.file, compress_pdf, args.file)
    _write_output("compress", args.file, data, args.output)
    return 0


def _cmd_pdfa(args: argparse.Namespace) -> int:
    data = run_operation("pdfa", args.file, convert_to_pdfa, args.file)
    _write_output("pdfa", args.file, data, args.output)
    return 0


def _cmd_batch(args: argparse.Namespace) -> int:
    batch = Batch()
    failures = batch.add_files(args.files)
    for failure in failures:
        print(f"Error: {failure.filename}: {failure.error}", file=sys.stderr)

    report = batch.export_json()
    if args.report:
        Path(args.report).write_text(report)
        print(args.report)
    else:
        print(report)

    return 1 if failures else 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pdftrust",
        description="Inspect PDF files for privacy risk and rewrite their metadata.",
    )
    parser.add_argument(
        "-V", "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging to stderr",
    )

    commands = parser.add_subparsers(dest="command", metavar="COMMAND", required=True)

    analyze = commands.add_parser("analyze", help="Print a JSON risk report for a PDF")
    analyze.add_argument("file", metavar="FILE", help="Path to a PDF file")
    analyze.set_defaults(func=_cmd_analyze)

    ats = commands.add_parser("ats", help="Match a resume PDF against a job description")
    ats.add_argument("file", metavar="FILE", help="Path to a PDF file")
    job = ats.add_mutually_exclusive_group(required=True)
    job.add_argument("--job", metavar="TEXT", help="Job description text")
    job.add_argument("--job-file", metavar="PATH", help="File holding the job description")
    ats.set_defaults(func=_cmd_ats)

    quality = commands.add_parser("quality", help="Print quality and accessibility findings")
    quality.add_argument("file", metavar="FILE", help="Path to a PDF file")
    quality.set_defaults(func=_cmd_quality)

    edit = commands.add_parser("edit", help="Rewrite metadata fields (empty string clears a field)")
    edit.add_argument("file", metavar="FILE", help="Path to a PDF file")
    for name in INFO_FIELDS:
        edit.add_argument(f"--{name}", metavar="TEXT")
    edit.add_argument(
        "--template",
        choices=sorted(METADATA_TEMPLATES),
        help="Start from a named metadata template",
    )
    edit.add_argument("-o", "--output", metavar="PATH", help="Output file path")
    edit.set_defaults(func=_cmd_edit)

    sanitize = commands.add_parser("sanitize", help="Strip metadata from one or more PDFs")
    sanitize.add_argument("files", metavar="FILE", nargs="+", help="Paths to PDF files")
    sanitize.set_defaults(func=_cmd_sanitize)

    watermark = commands.add_parser("watermark", help="Stamp text diagonally across every page")
    watermark.add_argument("file", metavar="FILE", help="Path to a PDF file")
    watermark.add_argument("--text", required=True, help="Watermark text (printable ASCII)")
    watermark.add_argument("-o", "--output", metavar="PATH", help="Output file path")
    watermark.set_defaults(func=_cmd_watermark)

    compress = commands.add_parser("compress", help="Re-save with compacted objects")
    compress.add_argument("file", metavar="FILE", help="Path to a PDF file")
    compress.add_argument("-o", "--output", metavar="PATH", help="Output file path")
    compress.set_defaults(func=_cmd_compress)

    pdfa = commands.add_parser("pdfa", help="Add an sRGB output intent (not a conformance conversion)")
    pdfa.add_argument("file", metavar="FILE", help="Path to a PDF file")
    pdfa.add_argument("-o", "--output", metavar="PATH", help="Output file path")
    pdfa.set_defaults(func=_cmd_pdfa)

    batch = commands.add_parser("batch", help="Analyze several PDFs and export one report")
    batch.add_argument("files", metavar="FILE", nargs="+", help="Paths to PDF files")
    batch.add_argument(
        "--report",
        nargs="?",
        const=REPORT_FILENAME,
        metavar="PATH",
        help=f"Write the JSON report to PATH (default {REPORT_FILENAME})",
    )
    batch.set_defaults(func=_cmd_batch)

    return parser


def main() -> None:
    """Main entry point for the CLI."""
    args = _build_parser().parse_args()

    if args.verbose:
        logging.basicConfig(
            level=logging.INFO,
            stream=sys.stderr,
            format="%(name)s: %(message)s",
        )

    try:
        status = args.func(args)
    except PdfTrustError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    sys.exit(status)
