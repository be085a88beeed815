#!/usr/bin/env python3
"""
Invoice Automation Core - Main Entry Point.

Command-line interface and programmatic access to the invoice
processing pipeline: PDF classification, text extraction, invoice data
extraction, validation and the final processing decision.

Usage:
    Command Line:
        python main.py --input invoice.pdf
        python main.py --input ./invoices/ --output ./results/ --no-database
        python main.py --input scan.pdf --strategy ocr_primary --debug

    Python:
        from main import run_processing
        results = run_processing("invoices/")

Author: ML Engineering Team
Version: 1.0.0
"""

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT))

# Import project modules
from config import ConfigurationManager
from src.utils.logger import setup_logger_from_config, get_logger
from src.utils.helpers import ensure_directory


STRATEGY_CHOICES = [
    "layout_primary",
    "ocr_primary",
    "multi_method_digital",
    "multi_method_hybrid",
    "fallback_chain",
]


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed argument namespace.
    """
    parser = argparse.ArgumentParser(
        description="Invoice Automation Core - PDF invoice processing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    Process single invoice:
        python main.py --input invoice.pdf

    Process directory, Excel report only:
        python main.py --input ./invoices/ --output ./results/ --no-database

    Force OCR for a scanned document:
        python main.py --input scan.pdf --strategy ocr_primary
        """
    )

    # Input/Output arguments
    parser.add_argument(
        "--input", "-i",
        type=str,
        required=True,
        help="PDF file or directory containing PDF invoices"
    )
    parser.add_argument(
        "--output", "-o",
        type=str,
        default=None,
        help="Output directory for the Excel report and database (default: paths.output_dir)"
    )

    # Processing options
    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="Path to custom configuration file"
    )
    parser.add_argument(
        "--strategy", "-s",
        choices=STRATEGY_CHOICES,
        default=None,
        help="Force a text extraction strategy instead of selecting one per document"
    )
    parser.add_argument(
        "--sequential",
        action="store_true",
        help="Run extraction branches and documents one at a time"
    )
    parser.add_argument(
        "--subject",
        type=str,
        default=None,
        help="Email subject the documents arrived with"
    )
    parser.add_argument(
        "--sender",
        type=str,
        default=None,
        help="Sender address the documents arrived from"
    )
    parser.add_argument(
        "--no-excel",
        action="store_true",
        help="Disable Excel output"
    )
    parser.add_argument(
        "--no-database",
        action="store_true",
        help="Disable database output"
    )

    # Logging options
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    return parser.parse_args(argv)


def initialize_system(args: argparse.Namespace) -> ConfigurationManager:
    """
    Initialize configuration and logging.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Initialized configuration manager.
    """
    if args.config:
        ConfigurationManager.reset()
    config = ConfigurationManager(args.config)

    logger = setup_logger_from_config()
    if args.debug:
        logger.setLevel(logging.DEBUG)
        for handler in logger.handlers:
            handler.setLevel(logging.DEBUG)

    logger.info("=" * 60)
    logger.info("INVOICE AUTOMATION CORE")
    logger.info("=" * 60)
    logger.info(f"Version: {config.get('project.version', '1.0.0')}")
    logger.info(f"Input: {args.input}")
    logger.info(f"Output: {args.output or config.get('paths.output_dir', 'outputs')}")

    return config


def run_processing(
    input_path: str,
    output_dir: Optional[str] = None,
    enable_excel: bool = True,
    enable_database: bool = True,
    strategy: Optional[str] = None,
    sequential: bool = False,
    email_subject: Optional[str] = None,
    sender_email: Optional[str] = None
):
    """
    Run the invoice processing pipeline.

    Args:
        input_path: PDF file or directory of PDFs.
        output_dir: Directory for the Excel report and database.
        enable_excel: Whether to write the Excel report.
        enable_database: Whether to store results in SQLite.
        strategy: Forced extraction strategy name.
        sequential: Disable parallel branches and documents.
        email_subject: Email subject for all documents.
        sender_email: Sender address for all documents.

    Returns:
        List of ProcessingResult objects.

    Example:
        >>> results = run_processing("invoices/", "outputs/")
        >>> for r in results:
        ...     print(r.summary())
    """
    logger = get_logger(__name__)

    # Import pipeline components
    from src.output_handler import OutputHandler
    from src.processing import DirectoryPdfSource, InvoiceProcessingService
    from src.text_extraction import CoordinatorSettings, ExtractionCoordinator, ExtractionStrategy

    source = DirectoryPdfSource(input_path, email_subject=email_subject, sender_email=sender_email)
    if len(source) == 0:
        logger.warning(f"No PDF files found in: {input_path}")
        return []

    settings = CoordinatorSettings.from_config()
    if sequential:
        settings = replace(settings, parallel_processing=False)

    output_handler = OutputHandler(
        excel_enabled=enable_excel,
        database_enabled=enable_database,
        output_dir=output_dir
    )

    service = InvoiceProcessingService(
        coordinator=ExtractionCoordinator(settings=settings),
        sinks=[output_handler],
        max_workers=1 if sequential else None,
    )

    forced = ExtractionStrategy(strategy) if strategy else None
    try:
        results = service.process_all(source, strategy=forced, parallel=not sequential)
    finally:
        service.coordinator.close()
        service.data_extractor.close()
        output_info = output_handler.close()

    if output_info.get('excel_path'):
        logger.info(f"Excel output: {output_info['excel_path']}")
    if output_info.get('database_path'):
        logger.info(f"Database: {output_info['database_path']}")

    stats = service.statistics(results)
    logger.info(
        f"Processed {stats['total']} document(s): {stats['successful']} successful, "
        f"{stats['failed']} failed, {stats['auto_approved']} auto-approved"
    )
    return results


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main function - entry point for command-line execution.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    try:
        args = parse_arguments(argv)
        initialize_system(args)
        logger = get_logger(__name__)

        if args.output:
            ensure_directory(args.output)

        results = run_processing(
            input_path=args.input,
            output_dir=args.output,
            enable_excel=not args.no_excel,
            enable_database=not args.no_database,
            strategy=args.strategy,
            sequential=args.sequential,
            email_subject=args.subject,
            sender_email=args.sender,
        )

        if not results:
            logger.error("No files to process")
            return 1

        for result in results:
            print(result.summary())

        logger.info("=" * 60)
        logger.info(f"Processing complete. Processed {len(results)} files.")
        logger.info("=" * 60)
        return 0

    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 130
    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        if argv is None and "--debug" in sys.argv:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
