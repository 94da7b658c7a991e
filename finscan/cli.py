"""Command-line interface for document extraction and CSV export.

``finscan extract FILE`` prints the annotated text of one document;
``finscan batch DIR -o results.csv`` extracts every supported document in
a folder and writes one CSV row per file with a column per field label.
"""

import argparse
import asyncio
import csv
import json
import mimetypes
import sys
import time
from pathlib import Path

from finscan.dispatcher import (
    ExtractionDispatcher,
    ExtractionResult,
    UploadedDocument,
    build_dispatcher,
)
from finscan.errors import ExtractionError
from finscan.utils.config import load_config
from finscan.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

SUPPORTED_SUFFIXES = frozenset({".png", ".jpg", ".jpeg", ".tif", ".tiff", ".bmp", ".pdf"})

# Leading CSV columns; field labels follow in alphabetical order.
_META_COLUMNS = (
    "filename",
    "status",
    "document_type",
    "source",
    "page_count",
    "ocr_confidence",
    "low_confidence",
    "processing_time_s",
    "error",
)


def _find_documents(input_dir: Path) -> list[Path]:
    """Return supported document files directly inside ``input_dir``, sorted by name."""
    return sorted(
        path
        for path in input_dir.iterdir()
        if path.is_file() and path.suffix.lower() in SUPPORTED_SUFFIXES
    )


def load_document(file_path: Path) -> UploadedDocument:
    """Read a file into an :class:`UploadedDocument`, guessing its media type."""
    media_type, _ = mimetypes.guess_type(file_path.name)
    return UploadedDocument(
        content=file_path.read_bytes(),
        media_type=media_type or "application/octet-stream",
        filename=file_path.name,
    )


def _result_row(name: str, result: ExtractionResult, elapsed: float) -> dict[str, object]:
    confidence = result.ocr_confidence
    row: dict[str, object] = {
        "filename": name,
        "status": "success",
        "document_type": result.document_kind.value,
        "source": result.source,
        "page_count": result.page_count,
        "ocr_confidence": None if confidence is None else round(confidence, 1),
        "low_confidence": result.low_confidence,
        "processing_time_s": round(elapsed, 2),
    }
    for extracted in result.fields:
        row[extracted.label] = extracted.value
    return row


async def _extract_all(
    files: list[Path], dispatcher: ExtractionDispatcher, verbose: bool
) -> list[dict[str, object]]:
    rows: list[dict[str, object]] = []
    for index, path in enumerate(files, 1):
        if verbose:
            print(f"[{index}/{len(files)}] {path.name}")
        started = time.perf_counter()
        try:
            result = await dispatcher.extract_detailed(load_document(path))
        except ExtractionError as exc:
            logger.error("Could not extract %s: %s", path.name, exc)
            rows.append({"filename": path.name, "status": "failed", "error": str(exc)})
        else:
            rows.append(_result_row(path.name, result, time.perf_counter() - started))
    return rows


def _write_csv(rows: list[dict[str, object]], output_path: Path) -> None:
    """Write result rows to ``output_path``, meta columns first."""
    if not rows:
        return

    present = {key for row in rows for key in row}
    columns = [c for c in _META_COLUMNS if c in present]
    columns += sorted(present.difference(_META_COLUMNS))

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", newline="") as handle:
        writer = csv.DictWriter(handle, fieldnames=columns)
        writer.writeheader()
        writer.writerows(rows)


def process_folder(
    input_dir: Path,
    output_csv: Path,
    dispatcher: ExtractionDispatcher | None = None,
    verbose: bool = False,
) -> dict[str, int]:
    """Extract every supported document in a folder and export a CSV summary.

    Args:
        input_dir: Folder to scan (not recursive).
        output_csv: Destination CSV path; parent folders are created.
        dispatcher: Dispatcher to use; built from the config when omitted.
        verbose: Print a progress line per file.

    Returns:
        Counts of ``total``, ``successful`` and ``failed`` documents.
    """
    files = _find_documents(input_dir)
    if not files:
        logger.warning("Nothing to extract in %s", input_dir)
        return {"total": 0, "successful": 0, "failed": 0}

    logger.info("Extracting %d documents from %s", len(files), input_dir)
    dispatcher = dispatcher or build_dispatcher(load_config())
    rows = asyncio.run(_extract_all(files, dispatcher, verbose))
    _write_csv(rows, output_csv)

    successful = sum(row["status"] == "success" for row in rows)
    summary = {"total": len(rows), "successful": successful, "failed": len(rows) - successful}
    logger.info("Wrote %d rows to %s", len(rows), output_csv)
    print(
        f"Extracted {summary['successful']}/{summary['total']} documents "
        f"({summary['failed']} failed) -> {output_csv}"
    )
    return summary


def extract_single(
    file_path: Path, dispatcher: ExtractionDispatcher | None = None
) -> ExtractionResult:
    """Extract one document and return the detailed result."""
    dispatcher = dispatcher or build_dispatcher(load_config())
    return asyncio.run(dispatcher.extract_detailed(load_document(file_path)))


def _render(file_path: Path, result: ExtractionResult, as_json: bool) -> str:
    if not as_json:
        return result.annotated_text
    payload = {
        "filename": file_path.name,
        "document_type": result.document_kind.value,
        "fields": {f.label: f.value for f in result.fields},
        "source": result.source,
        "ocr_confidence": result.ocr_confidence,
        "low_confidence": result.low_confidence,
        "annotated_text": result.annotated_text,
    }
    return json.dumps(payload, indent=2)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="finscan", description="Extract annotated text from financial documents"
    )
    commands = parser.add_subparsers(dest="command")

    extract = commands.add_parser("extract", help="Extract a single document")
    extract.add_argument("file", type=Path, help="Image or PDF to extract")
    extract.add_argument("--json", action="store_true", help="Emit fields and metadata as JSON")
    extract.add_argument("-o", "--output", type=Path, help="Write the output to this file")

    batch = commands.add_parser("batch", help="Extract every document in a folder")
    batch.add_argument("input_dir", type=Path, help="Folder of images and PDFs")
    batch.add_argument(
        "-o", "--output", type=Path, default=Path("results.csv"), help="CSV destination"
    )
    batch.add_argument("-v", "--verbose", action="store_true", help="Print per-file progress")
    return parser


def main(argv: list[str] | None = None) -> None:
    """Entry point for the ``finscan`` command.

    Args:
        argv: Arguments to parse instead of ``sys.argv``.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        sys.exit(0)

    config = load_config()
    setup_logging(config.log_level)

    if args.command == "batch":
        if not args.input_dir.is_dir():
            sys.exit(f"Error: {args.input_dir} is not a directory")
        process_folder(args.input_dir, args.output, build_dispatcher(config), args.verbose)
        return

    if not args.file.is_file():
        sys.exit(f"Error: {args.file} does not exist")
    try:
        result = extract_single(args.file, build_dispatcher(config))
    except ExtractionError as exc:
        sys.exit(f"Error: {exc}")

    rendered = _render(args.file, result, args.json)
    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(rendered, encoding="utf-8")
        print(f"Wrote {args.output}")
    else:
        print(rendered)


if __name__ == "__main__":
    main()
