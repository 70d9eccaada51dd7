#!/usr/bin/env python3
"""
Document Redactor CLI

Finds identity numbers, tax identifiers, phone numbers and postal
addresses in scanned documents (PNG, JPEG, PDF) and writes permanently
redacted copies.

Usage:
    python redact.py --input ./scans/ --output ./redacted/
    python redact.py --input card.png --output ./out/ --pages-json card.pages.json
"""

import sys
import logging
from pathlib import Path
from datetime import datetime
from typing import Optional

import click
from PIL import ImageColor

from document_redactor.models import Category, DetectionParams, PipelineOptions, RedactionParams
from document_redactor.parallel import (
    find_documents, process_corpus_with_tqdm, get_processing_stats,
)
from document_redactor.output_writer import write_all_outputs, describe_counts
from document_redactor.validation import MAX_FILE_SIZE


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger(__name__)


def validate_input_path(ctx, param, value):
    """Validate that the input file or directory exists."""
    path = Path(value)
    if not path.exists():
        raise click.BadParameter(f"Input path does not exist: {value}")
    return path


def validate_pages_json(ctx, param, value):
    """Validate that a saved extraction file exists."""
    if value is None:
        return None
    path = Path(value)
    if not path.is_file():
        raise click.BadParameter(f"Pages file does not exist: {value}")
    return path


def parse_fill_color(ctx, param, value):
    """Parse a colour name or #rrggbb into an RGB tuple."""
    try:
        return ImageColor.getrgb(value)[:3]
    except ValueError:
        raise click.BadParameter(f"Not a colour: {value}")


def parse_min_confidence(ctx, param, values):
    """Parse repeated CATEGORY=VALUE pairs into per-category thresholds."""
    thresholds = {}
    for item in values:
        name, _, raw = item.partition("=")
        try:
            category = Category(name.strip().lower())
            threshold = float(raw)
        except ValueError:
            choices = ", ".join(c.value for c in Category)
            raise click.BadParameter(f"Expected CATEGORY=VALUE with CATEGORY one of {choices}: {item}")
        if not 0.0 <= threshold <= 1.0:
            raise click.BadParameter(f"Confidence must be between 0 and 1: {item}")
        thresholds[category] = threshold
    return tuple(thresholds.items())


@click.command()
@click.option(
    "--input", "-i",
    "input_path",
    required=True,
    callback=validate_input_path,
    help="Input file, or directory of PNG/JPEG/PDF files to redact"
)
@click.option(
    "--output", "-o",
    "output_dir",
    required=True,
    type=click.Path(file_okay=False, path_type=Path),
    help="Output directory for redacted files and reports"
)
@click.option(
    "--workers", "-w",
    default=4,
    type=int,
    envvar="REDACT_WORKERS",
    help="Number of parallel worker processes. Default: 4"
)
@click.option(
    "--lang",
    default="eng",
    envvar="REDACT_TESSERACT_LANG",
    help="Tesseract language code(s), e.g. eng or eng+hin. Default: eng"
)
@click.option(
    "--ocr-zoom",
    default=2.0,
    type=float,
    help="Render scale for OCR of PDF pages (2.0 = 144 DPI). Default: 2.0"
)
@click.option(
    "--pages-json",
    default=None,
    callback=validate_pages_json,
    help="Use saved extraction output instead of running OCR (single input file only)"
)
@click.option(
    "--address-window",
    default=200,
    type=int,
    help="Characters searched either side of a postal code for address keywords. Default: 200"
)
@click.option(
    "--address-overlap",
    default=0.5,
    type=float,
    help="Overlap fraction at which two address regions are merged. Default: 0.5"
)
@click.option(
    "--aggressive/--no-aggressive",
    default=True,
    help="Sliding-window search for tax identifiers fused to noise. Default: on"
)
@click.option(
    "--min-confidence",
    multiple=True,
    callback=parse_min_confidence,
    help="Minimum confidence per category as CATEGORY=VALUE, e.g. identifier_b=0.7 (repeatable)"
)
@click.option(
    "--fill-color",
    default="#000000",
    callback=parse_fill_color,
    help="Redaction fill colour (name or #rrggbb). Default: #000000"
)
@click.option(
    "--verify/--no-verify",
    default=True,
    help="Re-render outputs and check every redacted region is solid fill. Default: on"
)
@click.option(
    "--max-file-size",
    default=MAX_FILE_SIZE,
    type=int,
    help=f"Largest accepted input in bytes. Default: {MAX_FILE_SIZE}"
)
@click.option(
    "--reveal-values",
    is_flag=True,
    help="Write detected values in full in detections.json/csv (masked by default)"
)
@click.option(
    "--subset", "-s",
    default=None,
    type=int,
    help="Process only the first N files (for testing)"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable verbose output"
)
def main(
    input_path: Path,
    output_dir: Path,
    workers: int,
    lang: str,
    ocr_zoom: float,
    pages_json: Optional[Path],
    address_window: int,
    address_overlap: float,
    aggressive: bool,
    min_confidence: tuple,
    fill_color: tuple,
    verify: bool,
    max_file_size: int,
    reveal_values: bool,
    subset: Optional[int],
    verbose: bool,
):
    """
    Redact personal identifiers from scanned documents.

    Runs OCR over each input, detects identity numbers, tax identifiers,
    phone numbers and addresses, and paints opaque boxes over them.

    Outputs:

    \b
    - <name>_redacted.<ext>: Redacted copy of each input
    - detections.json: Detections per document
    - detections.csv: Flat CSV, one row per detection
    - summary.json: Aggregate statistics
    """
    # Set logging level
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    # Print banner
    click.echo("=" * 60)
    click.echo("Document Redactor")
    click.echo("=" * 60)
    click.echo()

    # Print configuration
    click.echo("Configuration:")
    click.echo(f"  Input:            {input_path}")
    click.echo(f"  Output directory: {output_dir}")
    click.echo(f"  Workers:          {workers}")
    if pages_json:
        click.echo(f"  Extraction:       saved pages {pages_json}")
    else:
        click.echo(f"  Extraction:       tesseract ({lang}, zoom {ocr_zoom})")
    click.echo(f"  Address window:   {address_window} chars")
    click.echo(f"  Aggressive pass:  {aggressive}")
    click.echo(f"  Fill colour:      {fill_color}")
    click.echo(f"  Verify coverage:  {verify}")
    if subset:
        click.echo(f"  Subset:           first {subset} files")
    click.echo()

    files = find_documents(input_path, subset)
    if not files:
        click.echo(click.style("Error: No PNG, JPEG or PDF files found", fg="red"))
        sys.exit(1)

    if pages_json is not None and len(files) != 1:
        click.echo(click.style("Error: --pages-json needs a single input file", fg="red"))
        sys.exit(1)

    click.echo(f"Found {len(files)} file(s) to process")
    click.echo()

    output_dir.mkdir(parents=True, exist_ok=True)

    options = PipelineOptions(
        detection=DetectionParams(
            address_window=address_window,
            address_overlap_threshold=address_overlap,
            aggressive_matching=aggressive,
            min_confidence=min_confidence,
        ),
        redaction=RedactionParams(fill_color=fill_color),
        lang=lang,
        ocr_zoom=ocr_zoom,
        verify=verify,
        max_file_size=max_file_size,
    )

    start_time = datetime.now()

    try:
        corpus = process_corpus_with_tqdm(
            files,
            output_dir,
            options,
            workers,
            pages_json=pages_json
        )
    except KeyboardInterrupt:
        click.echo()
        click.echo(click.style("Processing interrupted by user", fg="yellow"))
        sys.exit(130)
    except Exception as e:
        click.echo(click.style(f"Error during processing: {e}", fg="red"))
        if verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)

    elapsed = datetime.now() - start_time

    click.echo()
    click.echo("Processing complete!")
    click.echo(f"  Time elapsed: {elapsed}")
    click.echo()

    stats = get_processing_stats(corpus)

    click.echo("Results:")
    click.echo(f"  Documents redacted: {stats['successful_documents']}/{stats['total_documents']}")
    click.echo(f"  Total pages:        {stats['total_pages']}")
    click.echo(f"  Total detections:   {stats['total_detections']}")

    for doc in corpus.documents:
        if doc.error is None:
            click.echo(f"    {doc.doc_id}: {describe_counts(doc.detections)}")

    if stats['uncovered_regions'] > 0:
        click.echo()
        click.echo(click.style(
            f"  Warning: {stats['uncovered_regions']} redacted region(s) failed coverage checks",
            fg="yellow"
        ))

    if stats['failed_documents'] > 0:
        click.echo()
        click.echo(click.style(f"  Failed documents: {stats['failed_documents']}", fg="yellow"))
        for failure in stats['failures']:
            where = f" (page {failure['page']})" if failure['page'] else ""
            click.echo(f"    - {failure['doc_id']}: {failure['error_type']}{where}")

    click.echo()

    # Write outputs
    click.echo("Writing report files...")

    try:
        paths = write_all_outputs(corpus, options, output_dir, reveal_values)

        click.echo(f"  {paths['detections_json']}")
        click.echo(f"  {paths['detections_csv']}")
        click.echo(f"  {paths['summary_json']}")

    except Exception as e:
        click.echo(click.style(f"Error writing outputs: {e}", fg="red"))
        if verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)

    click.echo()

    if stats['failed_documents'] == stats['total_documents']:
        click.echo(click.style("No documents were redacted", fg="red"))
        sys.exit(1)

    click.echo(click.style("Done!", fg="green"))


if __name__ == "__main__":
    main()
