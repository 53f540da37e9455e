"""Command-line interface for OCR extraction, batch processing, and listing.

Provides subcommands to extract text from a single file, push a folder of
documents through the full pipeline with CSV export, list stored
documents, and run the API server.
"""

import argparse
import asyncio
import csv
import json
import mimetypes
import sys
import time
from pathlib import Path

from src.errors import DocumentServiceError
from src.ocr.orchestrator import OCROrchestrator
from src.processing.pipeline import DocumentPipeline, build_pipeline
from src.utils.config import AppConfig, StorageConfig, load_config
from src.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_SUPPORTED_EXTENSIONS = ("*.png", "*.jpg", "*.jpeg", "*.pdf")
_CSV_COLUMNS = [
    "filename",
    "status",
    "document_id",
    "engine",
    "characters",
    "processing_time_s",
    "error",
]


def _find_documents(input_dir: Path) -> list[Path]:
    """Find all supported document files in a directory.

    Args:
        input_dir: Directory to scan for documents.

    Returns:
        Sorted list of document file paths.
    """
    files: list[Path] = []
    for ext in _SUPPORTED_EXTENSIONS:
        files.extend(input_dir.glob(ext))
        files.extend(input_dir.glob(ext.upper()))
    return sorted(set(files))


def _persistent_config(config: AppConfig) -> AppConfig:
    """Return ``config`` with a SQL store, so CLI runs share their documents."""
    if config.storage.backend == "sql":
        return config
    logger.debug(
        "Using SQL store at %s instead of %s backend",
        config.storage.database_url,
        config.storage.backend,
    )
    storage = StorageConfig(backend="sql", database_url=config.storage.database_url)
    return config.model_copy(update={"storage": storage})


def _guess_content_type(file_path: Path) -> str | None:
    content_type, _ = mimetypes.guess_type(file_path.name)
    return content_type


def extract_file(file_path: Path, config: AppConfig) -> dict[str, object]:
    """Run the OCR fallback chain on one file without storing anything.

    Args:
        file_path: Image or PDF to read.
        config: Application configuration.

    Returns:
        Dictionary with filename, engine, attempts, and text.
    """

    async def run() -> dict[str, object]:
        orchestrator = OCROrchestrator.from_config(config)
        try:
            result = await orchestrator.extract(
                file_path.read_bytes(), _guess_content_type(file_path)
            )
        finally:
            await orchestrator.aclose()
        return {
            "filename": file_path.name,
            "engine": result.engine,
            "attempts": [
                {"engine": a.engine, "status": a.status.value, "error": a.error}
                for a in result.attempts
            ],
            "text": result.text,
        }

    return asyncio.run(run())


async def _process_one(pipeline: DocumentPipeline, file_path: Path) -> dict[str, object]:
    start_time = time.time()
    try:
        outcome = await pipeline.process(
            file_path.name, file_path.read_bytes(), _guess_content_type(file_path)
        )
    except DocumentServiceError as exc:
        logger.error("Failed to process %s: %s", file_path.name, exc)
        return {
            "filename": file_path.name,
            "status": "failed",
            "processing_time_s": round(time.time() - start_time, 2),
            "error": exc.user_message,
        }

    return {
        "filename": file_path.name,
        "status": outcome.state.state.value,
        "document_id": outcome.document.id,
        "engine": outcome.extraction.engine or "placeholder",
        "characters": len(outcome.extraction.text),
        "processing_time_s": round(time.time() - start_time, 2),
        "error": None,
    }


def process_folder(
    input_dir: Path,
    output_csv: Path,
    config: AppConfig,
    verbose: bool = False,
) -> dict[str, int]:
    """Process all documents in a folder and export results to CSV.

    Files are processed one after another through a single pipeline so
    the local OCR worker is initialized only once. Documents are stored in
    the SQL database at ``storage.database_url``.

    Args:
        input_dir: Directory containing document files.
        output_csv: Path for the output CSV file.
        config: Application configuration.
        verbose: Whether to print per-file progress.

    Returns:
        Summary dict with total, successful, and failed counts.
    """
    files = _find_documents(input_dir)
    if not files:
        logger.warning("No documents found in %s", input_dir)
        return {"total": 0, "successful": 0, "failed": 0}

    logger.info("Found %d documents to process", len(files))

    async def run() -> list[dict[str, object]]:
        pipeline = build_pipeline(_persistent_config(config))
        results: list[dict[str, object]] = []
        try:
            for i, file_path in enumerate(files, 1):
                if verbose:
                    print(f"Processing [{i}/{len(files)}]: {file_path.name}")
                results.append(await _process_one(pipeline, file_path))
        finally:
            await pipeline.aclose()
        return results

    results = asyncio.run(run())
    failed = sum(1 for r in results if r["status"] == "failed")

    _write_csv(results, output_csv)
    logger.info("Results written to %s", output_csv)

    summary = {"total": len(files), "successful": len(files) - failed, "failed": failed}
    _print_summary(summary, output_csv)
    return summary


def _write_csv(results: list[dict[str, object]], output_path: Path) -> None:
    """Write processing results to a CSV file.

    Args:
        results: List of result dictionaries.
        output_path: Path for the output CSV file.
    """
    if not results:
        return

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=_CSV_COLUMNS, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(results)


def _print_summary(summary: dict[str, int], output_csv: Path) -> None:
    """Print batch processing summary to stdout."""
    print(f"\n{'=' * 50}")
    print("Batch Processing Complete")
    print(f"{'=' * 50}")
    print(f"Total:      {summary['total']}")
    print(f"Successful: {summary['successful']}")
    print(f"Failed:     {summary['failed']}")
    print(f"Output:     {output_csv}")


def list_documents(config: AppConfig) -> list[dict[str, object]]:
    """Return documents from the SQL database as JSON-ready dictionaries."""

    async def run() -> list[dict[str, object]]:
        pipeline = build_pipeline(_persistent_config(config))
        try:
            documents = await pipeline.store.list_documents()
        finally:
            await pipeline.aclose()
        return [
            {
                "id": d.id,
                "fileName": d.file_name,
                "createdAt": d.created_at.isoformat(),
                "updatedAt": d.updated_at.isoformat(),
                "text": d.display_text,
            }
            for d in documents
        ]

    return asyncio.run(run())


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="Scanned Document OCR",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-c", "--config", type=Path, help="YAML config file (default: configs/config.yaml)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    single_parser = subparsers.add_parser("extract", help="Extract text from one file")
    single_parser.add_argument("file", type=Path, help="Image or PDF to read")
    single_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    batch_parser = subparsers.add_parser(
        "batch", help="Process a folder of documents into the SQL database"
    )
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
        "-v", "--verbose", action="store_true", help="Verbose output"
    )

    subparsers.add_parser(
        "list", help="List documents stored in the SQL database by batch"
    )

    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logging(config.log_level)

    if args.command == "extract":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        try:
            result = extract_file(args.file, config)
        except DocumentServiceError as exc:
            print(f"Error: {exc.user_message}", file=sys.stderr)
            sys.exit(1)
        output_str = json.dumps(result, indent=2, ensure_ascii=False)
        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(output_str, encoding="utf-8")
            print(f"Output written to {args.output}")
        else:
            print(output_str)
    elif args.command == "batch":
        if not args.input_dir.is_dir():
            print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
            sys.exit(1)
        process_folder(args.input_dir, args.output, config, args.verbose)
    elif args.command == "list":
        print(json.dumps(list_documents(config), indent=2, ensure_ascii=False))
    elif args.command == "serve":
        import uvicorn

        from src.api.app import create_app

        uvicorn.run(create_app(config), host=args.host, port=args.port)
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
