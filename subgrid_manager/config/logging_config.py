"""
Logging configuration for the Subgrid Manager.

This module provides a centralized logging configuration that:
- Sets up both file and console logging handlers
- Configures appropriate log levels and formatters
- Manages noisy third-party library logging
- Ensures proper cleanup of logging resources
"""

import logging
import sys

def setup_logging(log_file: str = 'subgrid_manager.log', verbose: bool = False) -> None:
    """
    Configure logging with both file and console handlers.

    Console Handler:
    - Outputs to stderr
    - DEBUG level when verbose=True, INFO otherwise
    - Simplified formatting for readability

    File Handler:
    - Writes to the specified log file
    - Always records DEBUG level and above
    - Detailed formatting with timestamps and module context

    Args:
        log_file: Path to the log file (default: 'subgrid_manager.log')
        verbose: If True, shows DEBUG level messages in console

    Side Effects:
        - Creates/overwrites the specified log file
        - Replaces any handlers on the root logger
        - Lowers third-party library log levels unless verbose
    """
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(logging.Formatter('%(levelname)s - %(message)s'))
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)

    file_handler = logging.FileHandler(log_file, mode='w')
    file_handler.setFormatter(
        logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    )
    file_handler.setLevel(logging.DEBUG)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Remove any existing handlers
    cleanup_logging()

    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    if not verbose:
        for logger_name in ["urllib3", "urllib3.connectionpool", "asyncio"]:
            logging.getLogger(logger_name).setLevel(logging.WARNING)

def cleanup_logging() -> None:
    """
    Close and remove all handlers on the root logger.

    Should be called when the application exits or before
    reconfiguring logging.
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)
