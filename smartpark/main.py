# File: smartpark/main.py
"""
Main application entry point for the SmartPark Allocation Engine
Wires configuration, logging and the console presenter together
"""

from decimal import Decimal
from pathlib import Path
from typing import List, Optional
import argparse
import logging
import os
import sys

from .infrastructure.config import ConfigurationError, load_config
from .application.parking_service import ParkingServiceFactory
from .presentation.console import ConsoleApp


def setup_logging(level: str = "INFO", log_dir: Optional[str] = None) -> logging.Logger:
    """Setup application logging configuration"""
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_dir:
        if not os.path.exists(log_dir):
            os.makedirs(log_dir)
        handlers.append(logging.FileHandler(os.path.join(log_dir, 'smartpark.log')))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True
    )
    return logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='SmartPark - single-facility parking allocation')
    parser.add_argument('--config', type=Path, default=None,
                        help='YAML configuration file')
    parser.add_argument('--slots', type=int, dest='slot_count', default=None,
                        help='Number of parking slots (default: 10)')
    parser.add_argument('--wait-capacity', type=int, dest='wait_capacity', default=None,
                        help='Wait queue capacity (default: 10)')
    parser.add_argument('--max-vehicles', type=int, dest='max_vehicles', default=None,
                        help='Vehicle ids are 0..N-1 (default: 100)')
    parser.add_argument('--fee-per-hour', type=Decimal, dest='fee_per_hour', default=None,
                        help='Hourly parking fee (default: 50)')
    parser.add_argument('--log-level', default='WARNING',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level (default: WARNING)')
    parser.add_argument('--log-dir', default=None,
                        help='Also write logs to smartpark.log in this directory')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application"""
    args = build_parser().parse_args(argv)
    logger = setup_logging(args.log_level, args.log_dir)

    try:
        config = load_config(
            args.config,
            slot_count=args.slot_count,
            wait_capacity=args.wait_capacity,
            max_vehicles=args.max_vehicles,
            fee_per_hour=args.fee_per_hour
        )
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        logger.error(f"Configuration error: {e}")
        return 2

    logger.info("Starting SmartPark...")
    try:
        service = ParkingServiceFactory.create_service_with_config(config)
        return ConsoleApp(service).run()
    except KeyboardInterrupt:
        print("\nExiting...")
        return 0
    except Exception as e:
        print(f"Fatal error: {str(e)}", file=sys.stderr)
        logger.error(f"Fatal error in main: {str(e)}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
