"""Command-line interface for processing legal documents.

Subcommands extract and map a single document, process a folder into
the review queue (optionally auto-approving confident documents) with a
CSV export, and list the document-type catalog.
"""

import argparse
import csv
import json
import sys
import time
from dataclasses import asdict
from pathlib import Path

from legalflow.ocr.recognizer import SUPPORTED_SUFFIXES
from legalflow.pipeline import DocumentPipeline
from legalflow.utils.config import load_config
from legalflow.utils.logger import get_logger, setup_logging
from legalflow.workflow.models import ReviewItem, ReviewStatus

logger = get_logger(__name__)

_META_COLUMNS = [
    "filename",
    "status",
    "item_id",
    "document_type",
    "review_status",
    "priority",
    "page_count",
    "processing_time_s",
    "ocr_confidence",
    "overall_confidence",
    "error",
]

# Long free-text fields are left out of the CSV export.
_EXCLUDED_FIELDS = {"content"}


def _find_documents(input_dir: Path) -> list[Path]:
    """Find all supported document files in a directory.

    Args:
        input_dir: Directory to scan for documents.

    Returns:
        Sorted list of document file paths.
    """
    return sorted(
        p for p in input_dir.iterdir() if p.is_file() and p.suffix.lower() in SUPPORTED_SUFFIXES
    )


def process_folder(
    input_dir: Path,
    output_csv: Path,
    type_hint: str | None = None,
    auto_approve: float | None = None,
    verbose: bool = False,
    pipeline: DocumentPipeline | None = None,
) -> dict[str, int]:
    """Process all documents in a folder and export results to CSV.

    Every document is submitted to the review queue. With
    ``auto_approve``, a batch approval runs once all files are queued.

    Args:
        input_dir: Directory containing document files.
        output_csv: Path for the output CSV file.
        type_hint: Document type applied to every file, if known.
        auto_approve: Confidence threshold for batch approval.
        verbose: Whether to print per-file progress.
        pipeline: Pipeline to use; built from the configuration when ``None``.

    Returns:
        Summary dict with total, successful, failed and approved counts.
    """
    pipeline = pipeline or DocumentPipeline(load_config())

    files = _find_documents(input_dir)
    if not files:
        logger.warning("No documents found in %s", input_dir)
        return {"total": 0, "successful": 0, "failed": 0, "approved": 0}

    logger.info("Found %d documents to process", len(files))

    results: list[dict[str, object]] = []
    successful = 0
    failed = 0

    for i, file_path in enumerate(files, 1):
        if verbose:
            print(f"Processing [{i}/{len(files)}]: {file_path.name}")

        start_time = time.time()
        try:
            item = pipeline.submit_file(file_path, type_hint=type_hint, submitted_by="cli")
            result = _result_row(item)
            result["processing_time_s"] = round(time.time() - start_time, 2)
            results.append(result)
            successful += 1
        except (OSError, ValueError, RuntimeError) as exc:
            logger.error("Failed to process %s: %s", file_path.name, exc)
            results.append(
                {
                    "filename": file_path.name,
                    "status": "failed",
                    "error": str(exc),
                }
            )
            failed += 1

    approved: list[str] = []
    if auto_approve is not None:
        approved = pipeline.workflow.batch_approve(auto_approve, reviewer_id="cli")
        for row in results:
            if row.get("item_id") in approved:
                row["review_status"] = str(ReviewStatus.APPROVED)

    _write_csv(results, output_csv)
    logger.info("Results written to %s", output_csv)

    summary = {
        "total": len(files),
        "successful": successful,
        "failed": failed,
        "approved": len(approved),
    }
    _print_summary(summary, output_csv)
    return summary


def _result_row(item: ReviewItem) -> dict[str, object]:
    row: dict[str, object] = {
        "filename": item.original_document.filename,
        "status": "success",
        "item_id": item.id,
        "document_type": item.document_type,
        "review_status": str(item.status),
        "priority": str(item.priority),
        "page_count": item.original_document.page_count,
        "ocr_confidence": round(item.extraction.ocr_confidence, 3),
        "overall_confidence": round(item.overall_confidence, 3),
        "error": None,
    }
    for mapping in item.mapping_result.mapped_fields:
        if mapping.field_name not in _EXCLUDED_FIELDS:
            row[mapping.field_name] = mapping.value
    return row


def _write_csv(results: list[dict[str, object]], output_path: Path) -> None:
    """Write processing results to a CSV file.

    Args:
        results: List of result dictionaries.
        output_path: Path for the output CSV file.
    """
    if not results:
        return

    all_keys: set[str] = set()
    for r in results:
        all_keys.update(r.keys())

    field_columns = sorted(all_keys - set(_META_COLUMNS))
    columns = [c for c in _META_COLUMNS if c in all_keys] + field_columns

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=columns, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(results)


def _print_summary(summary: dict[str, int], output_csv: Path) -> None:
    print(f"\n{'=' * 50}")
    print("Batch Processing Complete")
    print(f"{'=' * 50}")
    print(f"Total:      {summary['total']}")
    print(f"Successful: {summary['successful']}")
    print(f"Failed:     {summary['failed']}")
    print(f"Approved:   {summary['approved']}")
    print(f"Output:     {output_csv}")


def extract_single(
    file_path: Path,
    type_hint: str | None = None,
    pipeline: DocumentPipeline | None = None,
) -> dict[str, object]:
    """Extract and map a single document without queueing it.

    Args:
        file_path: Path to the document file.
        type_hint: Known document type, if any.
        pipeline: Pipeline to use; built from the configuration when ``None``.

    Returns:
        Dictionary with the detected type, mapped fields, suggestions
        and unmapped data.
    """
    pipeline = pipeline or DocumentPipeline(load_config())
    processed = pipeline.process_file(file_path, type_hint=type_hint)
    mapping = processed.mapping_result

    return {
        "filename": file_path.name,
        "document_type": processed.document_type,
        "language": processed.extraction.language,
        "ocr_confidence": processed.extraction.ocr_confidence,
        "overall_confidence": mapping.overall_confidence,
        "fields": {
            m.field_name: {"value": m.value, "confidence": m.confidence, "source": str(m.source)}
            for m in mapping.mapped_fields
        },
        "suggestions": [asdict(s) for s in mapping.suggestions],
        "unmapped_data": mapping.unmapped_data,
    }


def list_templates(pipeline: DocumentPipeline | None = None) -> list[dict[str, object]]:
    pipeline = pipeline or DocumentPipeline(load_config())
    return [
        {
            "id": t.id,
            "type_name": t.type_name,
            "code": t.code,
            "required_fields": [f.name for f in t.form_schema.required_fields],
        }
        for t in pipeline.registry.templates
    ]


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="Legal document extraction and review",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", type=Path, default=None, help="YAML configuration file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    batch_parser = subparsers.add_parser("batch", help="Process a folder of documents")
    batch_parser.add_argument("input_dir", type=Path, help="Input directory with documents")
    batch_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("results.csv"),
        help="Output CSV file (default: results.csv)",
    )
    batch_parser.add_argument(
        "-t", "--type", dest="doc_type", default=None, help="Document type of every file"
    )
    batch_parser.add_argument(
        "--auto-approve",
        type=float,
        default=None,
        metavar="THRESHOLD",
        help="Approve queued documents at or above this confidence",
    )
    batch_parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    single_parser = subparsers.add_parser("extract", help="Process a single document")
    single_parser.add_argument("file", type=Path, help="Document file to process")
    single_parser.add_argument(
        "-t", "--type", dest="doc_type", default=None, help="Document type, if known"
    )
    single_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    subparsers.add_parser("templates", help="List the document-type catalog")

    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logging(config.log_level)

    if args.command == "batch":
        if not args.input_dir.is_dir():
            print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
            sys.exit(1)
        process_folder(
            args.input_dir,
            args.output,
            args.doc_type,
            args.auto_approve,
            args.verbose,
            DocumentPipeline(config),
        )
    elif args.command == "extract":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        result = extract_single(args.file, args.doc_type, DocumentPipeline(config))
        output_str = json.dumps(result, indent=2, ensure_ascii=False)
        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(output_str, encoding="utf-8")
            print(f"Output written to {args.output}")
        else:
            print(output_str)
    elif args.command == "templates":
        for template in list_templates(DocumentPipeline(config)):
            print(f"{template['id']:<28} {template['code']:<6} {template['type_name']}")
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
