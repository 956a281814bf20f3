"""
Main CLI entry point for xvest.
"""

import logging
import sys

from xvest.cli.vesting_commands import vesting

# Configure module logger
logger = logging.getLogger(__name__)


def main():
    """Main CLI entry point"""
    logger.debug("Starting xvest CLI")
    return vesting(obj={})


if __name__ == "__main__":
    sys.exit(main() or 0)
