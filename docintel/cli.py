"""Command-line interface for single and batch document extraction.

Provides an ``extract`` subcommand that prints or saves one result as JSON
and a ``batch`` subcommand that processes a folder concurrently and
exports the extracted fields to CSV.
"""

import argparse
import asyncio
import csv
import json
import sys
from pathlib import Path

from docintel.models import DocumentType, ExtractionResult, OCRConfig
from docintel.orchestrator import DocumentOrchestrator, build_orchestrator
from docintel.utils.config import AppConfig, load_config
from docintel.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".gif": "image/gif",
    ".pdf": "application/pdf",
}
_META_COLUMNS = [
    "filename",
    "status",
    "provider",
    "document_type",
    "processing_time_ms",
    "overall_confidence",
    "weighted_confidence",
    "warnings",
    "error",
]
_DOCUMENT_TYPES = [t.value for t in DocumentType]


def mime_type_for(path: Path) -> str:
    """Guess a document's MIME type from its extension."""
    return _MIME_TYPES.get(path.suffix.lower(), "application/octet-stream")


def _find_documents(input_dir: Path) -> list[Path]:
    """Find all supported document files in a directory.

    Args:
        input_dir: Directory to scan for documents.

    Returns:
        Sorted list of document file paths.
    """
    return sorted(
        p for p in input_dir.iterdir() if p.is_file() and p.suffix.lower() in _MIME_TYPES
    )


def _result_row(filename: str, result: ExtractionResult) -> dict[str, object]:
    """Flatten a result into one CSV row of metadata plus field values."""
    row: dict[str, object] = {
        "filename": filename,
        "status": "success" if result.success else "failed",
        "provider": result.provider,
        "document_type": result.document_type.value,
        "processing_time_ms": round(result.processing_time_ms, 1),
        "overall_confidence": round(result.overall_confidence, 3),
        "weighted_confidence": round(result.weighted_confidence, 3),
        "warnings": "; ".join(result.warnings),
        "error": result.error,
    }
    if result.extraction is not None:
        for name, field in result.extraction.populated_fields().items():
            row[name] = field.value
    return row


def _write_csv(rows: list[dict[str, object]], output_path: Path) -> None:
    """Write result rows to a CSV file.

    Args:
        rows: One dictionary per document.
        output_path: Path for the output CSV file.
    """
    if not rows:
        return

    all_keys: set[str] = set()
    for r in rows:
        all_keys.update(r.keys())

    field_columns = sorted(all_keys - set(_META_COLUMNS))
    columns = [c for c in _META_COLUMNS if c in all_keys] + field_columns

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=columns, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(rows)


def _print_summary(title: str, summary: dict[str, object], file=None) -> None:
    print(f"\n{'=' * 50}", file=file)
    print(title, file=file)
    print(f"{'=' * 50}", file=file)
    for key, value in summary.items():
        print(f"{key + ':':<12}{value}", file=file)


async def _extract_files(
    orchestrator: DocumentOrchestrator,
    files: list[Path],
    document_type: DocumentType | None,
    config: OCRConfig,
    verbose: bool,
) -> list[ExtractionResult]:
    async def run(index: int, path: Path) -> ExtractionResult:
        if verbose:
            print(f"Processing [{index}/{len(files)}]: {path.name}")
        return await orchestrator.extract_document(
            path.read_bytes(), mime_type_for(path), document_type, config
        )

    return await asyncio.gather(*(run(i, p) for i, p in enumerate(files, 1)))


def process_folder(
    input_dir: Path,
    output_csv: Path,
    document_type: DocumentType | None = None,
    concurrency: int | None = None,
    mock: bool = False,
    verbose: bool = False,
    app_config: AppConfig | None = None,
) -> dict[str, int]:
    """Extract every document in a folder and export results to CSV.

    Args:
        input_dir: Directory containing document files.
        output_csv: Path for the output CSV file.
        document_type: Type applied to every document; detected when None.
        concurrency: Maximum documents processed at once.
        mock: Use deterministic sample data.
        verbose: Whether to print per-file progress.
        app_config: Application settings; loaded from disk when omitted.

    Returns:
        Summary dict with total, successful, and failed counts.
    """
    app_config = app_config or load_config()
    if concurrency:
        app_config.pipeline.max_concurrency = concurrency
    orchestrator = build_orchestrator(app_config)
    config = app_config.pipeline.to_ocr_config().model_copy(
        update={"mock_mode": mock or app_config.pipeline.mock_mode}
    )

    files = _find_documents(input_dir)
    if not files:
        logger.warning("No documents found in %s", input_dir)
        return {"total": 0, "successful": 0, "failed": 0}

    logger.info("Found %d documents to process", len(files))
    results = asyncio.run(
        _extract_files(orchestrator, files, document_type, config, verbose)
    )

    for path, result in zip(files, results, strict=True):
        if not result.success:
            logger.error("Failed to process %s: %s", path.name, result.error)

    _write_csv(
        [_result_row(p.name, r) for p, r in zip(files, results, strict=True)],
        output_csv,
    )
    logger.info("Results written to %s", output_csv)

    successful = sum(1 for r in results if r.success)
    summary = {
        "total": len(files),
        "successful": successful,
        "failed": len(files) - successful,
    }
    _print_summary(
        "Batch Processing Complete",
        {
            "Total": summary["total"],
            "Successful": summary["successful"],
            "Failed": summary["failed"],
            "Output": output_csv,
        },
    )
    return summary


def extract_single(
    file_path: Path,
    document_type: DocumentType | None = None,
    config: OCRConfig | None = None,
    app_config: AppConfig | None = None,
) -> ExtractionResult:
    """Extract one document.

    Args:
        file_path: Path to the document file.
        document_type: Known document type; detected when None.
        config: Provider selection settings.
        app_config: Application settings; loaded from disk when omitted.

    Returns:
        The extraction result.
    """
    orchestrator = build_orchestrator(app_config)
    return orchestrator.extract_document_sync(
        file_path.read_bytes(), mime_type_for(file_path), document_type, config
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Document Intelligence extraction tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    single_parser = subparsers.add_parser("extract", help="Extract a single document")
    single_parser.add_argument("file", type=Path, help="Document file to process")
    single_parser.add_argument(
        "-t",
        "--type",
        choices=_DOCUMENT_TYPES,
        dest="doc_type",
        help="Document type (default: detect)",
    )
    single_parser.add_argument(
        "-p",
        "--provider",
        default="auto",
        help="Preferred provider: auto, claude, tesseract or mock (default: auto)",
    )
    single_parser.add_argument(
        "--no-fallback", action="store_true", help="Do not try other providers"
    )
    single_parser.add_argument(
        "--mock", action="store_true", help="Return deterministic sample data"
    )
    single_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    batch_parser = subparsers.add_parser("batch", help="Process a folder of documents")
    batch_parser.add_argument(
        "input_dir", type=Path, help="Input directory with documents"
    )
    batch_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("results.csv"),
        help="Output CSV file (default: results.csv)",
    )
    batch_parser.add_argument(
        "-t",
        "--type",
        choices=_DOCUMENT_TYPES,
        dest="doc_type",
        help="Document type applied to every file (default: detect)",
    )
    batch_parser.add_argument(
        "--concurrency", type=int, help="Maximum documents processed at once"
    )
    batch_parser.add_argument(
        "--mock", action="store_true", help="Return deterministic sample data"
    )
    batch_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    app_config = load_config()
    setup_logging(app_config.log_level)
    doc_type = DocumentType(args.doc_type) if getattr(args, "doc_type", None) else None

    if args.command == "batch":
        if not args.input_dir.is_dir():
            print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
            sys.exit(1)
        process_folder(
            args.input_dir,
            args.output,
            doc_type,
            args.concurrency,
            args.mock,
            args.verbose,
            app_config,
        )
    elif args.command == "extract":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        config = OCRConfig(
            preferred_provider=args.provider,
            enable_fallback=not args.no_fallback,
            mock_mode=args.mock or app_config.pipeline.mock_mode,
        )
        result = extract_single(args.file, doc_type, config, app_config)
        output_str = json.dumps(result.model_dump(mode="json"), indent=2)
        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(output_str)
            print(f"Output written to {args.output}")
        else:
            print(output_str)
        _print_summary(
            "Extraction Complete",
            {
                "Status": "success" if result.success else "failed",
                "Provider": result.provider,
                "Type": result.document_type.value,
                "Confidence": f"{result.overall_confidence:.0%}",
                "Error": result.error or "-",
            },
            file=sys.stderr,
        )
        if not result.success:
            sys.exit(1)
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
