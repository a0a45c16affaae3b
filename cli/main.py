#!/usr/bin/env python
"""
termkit - Interactive plugin console

Usage:
    python -m cli.main
    python -m cli.main --plugin-path ./my_plugins --strict
"""

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables FIRST (before importing project modules)
load_dotenv('.env')

from cli.repl import REPLRunner
from termkit.constants import (
    BUNDLED_PLUGINS_DIR,
    CASCADE_DISABLE,
    EXTRA_PLUGIN_PATHS,
    INSTALLED_PLUGINS_DIR,
    PLUGIN_CONFIG_FILE,
    STRICT_CONFIG,
)
from termkit.plugins.api import set_default_host
from termkit.plugins.host import PluginHost
from termkit.plugins.manager import PluginManager

# Configure logging
log_dir = Path(__file__).parent.parent / "log"
log_dir.mkdir(exist_ok=True)

root_logger = logging.getLogger()
root_logger.setLevel(logging.INFO)

# File handler - INFO and above
file_handler = logging.FileHandler(
    log_dir / "cli.log",
    encoding='utf-8'
)
file_handler.setLevel(logging.INFO)
file_formatter = logging.Formatter(
    '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
file_handler.setFormatter(file_formatter)

# Console handler - WARNING and above only, keeps INFO out of the REPL output
console_handler = logging.StreamHandler()
console_handler.setLevel(logging.WARNING)
console_formatter = logging.Formatter('%(levelname)s: %(message)s')
console_handler.setFormatter(console_formatter)

root_logger.addHandler(file_handler)
root_logger.addHandler(console_handler)


def parse_args():
    parser = argparse.ArgumentParser(
        description='termkit - Interactive plugin console',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        '-p', '--plugin-path',
        action='append',
        default=[],
        help='Extra directory to scan for plugins (repeatable)'
    )
    parser.add_argument(
        '--strict',
        action='store_true',
        default=STRICT_CONFIG,
        help='Reject config keys not declared in a plugin schema'
    )
    parser.add_argument(
        '--cascade',
        action='store_true',
        default=CASCADE_DISABLE,
        help='Disabling/unloading a plugin also disables/unloads its dependents'
    )
    return parser.parse_args()


def main():
    try:
        args = parse_args()
        host = PluginHost(strict_config=args.strict, cascade=args.cascade)
        set_default_host(host)
        manager = PluginManager(
            bundled_dir=BUNDLED_PLUGINS_DIR,
            installed_dir=INSTALLED_PLUGINS_DIR,
            config_file=PLUGIN_CONFIG_FILE,
            extra_paths=EXTRA_PLUGIN_PATHS + [Path(p) for p in args.plugin_path],
            host=host,
        )
        REPLRunner(manager).run()
    except KeyboardInterrupt:
        print("\n\033[33minterrupted\033[0m")
        sys.exit(0)


if __name__ == "__main__":
    main()
