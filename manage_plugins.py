#!/usr/bin/env python3
"""Plugin management CLI tool."""

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

# Ensure project root is in path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

load_dotenv(project_root / ".env")

from termkit.constants import (
    BUNDLED_PLUGINS_DIR,
    CASCADE_DISABLE,
    EXTRA_PLUGIN_PATHS,
    INSTALLED_PLUGINS_DIR,
    PLUGIN_CONFIG_FILE,
    STRICT_CONFIG,
)
from termkit.plugins.errors import PluginError
from termkit.plugins.host import PluginHost
from termkit.plugins.manager import PluginManager
from termkit.plugins.registry import PluginState

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "WARNING").upper(),
    format="%(levelname)s: %(name)s: %(message)s",
)


def get_manager() -> PluginManager:
    """Create a PluginManager over the standard search paths."""
    return PluginManager(
        bundled_dir=BUNDLED_PLUGINS_DIR,
        installed_dir=INSTALLED_PLUGINS_DIR,
        config_file=PLUGIN_CONFIG_FILE,
        extra_paths=EXTRA_PLUGIN_PATHS,
        host=PluginHost(strict_config=STRICT_CONFIG, cascade=CASCADE_DISABLE),
    )


def get_loaded_manager() -> PluginManager:
    manager = get_manager()
    manager.load_all()
    return manager


def cmd_list(args):
    """List all discovered plugins."""
    manager = get_loaded_manager()
    plugins = manager.list_plugins()

    if not plugins:
        print("No plugins found.")
        return

    enabled_ids = manager.config_service.get_enabled_list()

    print(f"{'ID':<20} {'Name':<30} {'Version':<10} {'Source':<10} {'Enabled':<8} {'State'}")
    print("-" * 100)

    for p in plugins:
        enabled = "Yes" if p["id"] in enabled_ids else "No"
        print(
            f"{p['id']:<20} {p['name']:<30} {p['version']:<10} "
            f"{p['source']:<10} {enabled:<8} {p['state']}"
        )


def cmd_info(args):
    """Show detailed plugin information."""
    manager = get_loaded_manager()
    info = manager.get_plugin_info(args.plugin_id)
    if not info:
        print(f"Plugin '{args.plugin_id}' not found.")
        sys.exit(1)

    instance = manager.host.get_plugin(args.plugin_id)
    schema = {
        key: option.model_dump() for key, option in instance.descriptor.config_schema.items()
    }

    print(f"Plugin: {info['id']}")
    print(f"  Name:         {info['name']}")
    print(f"  Version:      {info['version']}")
    print(f"  Author:       {info['author']}")
    print(f"  Description:  {info['description']}")
    print(f"  Source:       {info['source']}")
    print(f"  Path:         {info['path']}")
    print(f"  State:        {info['state']}")
    print(f"  Dependencies: {', '.join(info['dependencies']) or '-'}")
    print(f"  Dependents:   {', '.join(info['dependents']) or '-'}")
    if info["error"]:
        print(f"  Error:        {info['error']}")
    if info["config"]:
        print(f"  Config:       {json.dumps(info['config'], indent=4, ensure_ascii=False, default=str)}")
    if schema:
        print(f"  Schema:       {json.dumps(schema, indent=4, default=str)}")


def cmd_order(args):
    """Print the dependency load order."""
    manager = get_manager()
    manager.host.register_plugins(manager.discovery.discover_all())
    resolution = manager.host.resolve()

    for i, plugin_id in enumerate(resolution.order, 1):
        print(f"  {i}. {plugin_id}")
    for plugin_id, error in sorted(resolution.failures.items()):
        print(f"  x  {plugin_id}: {error}")


def cmd_enable(args):
    """Enable a plugin (and, implicitly, its dependencies)."""
    manager = get_loaded_manager()
    if not manager.host.registry.has(args.plugin_id):
        print(f"Plugin '{args.plugin_id}' not found.")
        sys.exit(1)

    instance = manager.enable_plugin(args.plugin_id)
    if instance is None:
        error = manager.host.get_plugin(args.plugin_id).error
        print(f"Plugin '{args.plugin_id}' could not be enabled: {error}")
        sys.exit(1)
    print(f"Plugin '{args.plugin_id}' enabled.")


def cmd_disable(args):
    """Disable a plugin."""
    manager = get_loaded_manager()
    if not manager.host.registry.has(args.plugin_id):
        # Still clear a stale entry from config
        manager.config_service.disable(args.plugin_id)
        print(f"Plugin '{args.plugin_id}' not found.")
        sys.exit(1)

    try:
        manager.disable_plugin(args.plugin_id, cascade=args.cascade or None)
    except PluginError as e:
        print(f"Cannot disable '{args.plugin_id}': {e}")
        print("Use --cascade to disable its dependents as well.")
        sys.exit(1)
    print(f"Plugin '{args.plugin_id}' disabled.")


def cmd_install(args):
    """Install a plugin from a local path."""
    source = Path(args.path).resolve()
    if not source.exists():
        print(f"Path does not exist: {source}")
        sys.exit(1)

    manager = get_loaded_manager()
    instance = manager.install_plugin(source)
    if instance is None:
        print(f"Could not install plugin from {source} (see log output).")
        sys.exit(1)

    print(f"Plugin '{instance.id}' installed to {instance.path}")
    print(f"Run 'python manage_plugins.py enable {instance.id}' to enable it.")


def cmd_doctor(args):
    """Run health checks on the plugin system."""
    issues = []

    # Check directories
    if not BUNDLED_PLUGINS_DIR.exists():
        issues.append(f"Bundled plugins directory missing: {BUNDLED_PLUGINS_DIR}")
    for extra in EXTRA_PLUGIN_PATHS:
        if not extra.exists():
            issues.append(f"Extra plugin path missing: {extra}")

    # Check config file
    if PLUGIN_CONFIG_FILE.exists():
        try:
            with open(PLUGIN_CONFIG_FILE, encoding="utf-8") as f:
                json.load(f)
        except json.JSONDecodeError as e:
            issues.append(f"Plugin config file has invalid JSON: {e}")

    # Admit, load and enable everything the config selects
    manager = get_loaded_manager()
    enabled_ids = manager.config_service.get_enabled_list()

    for eid in enabled_ids:
        if not manager.host.registry.has(eid):
            issues.append(f"Enabled plugin '{eid}' not found in any search path")

    for p in manager.host.registry.get_all():
        if p.state == PluginState.ERRORED or p.error is not None:
            issues.append(f"Plugin '{p.id}': {p.error}")
        elif p.id in enabled_ids and p.state != PluginState.ENABLED:
            issues.append(f"Plugin '{p.id}' is marked enabled but is {p.state.value}")

    plugin_count = manager.host.registry.count()
    manager.shutdown()

    if issues:
        print(f"Found {len(issues)} issue(s):")
        for i, issue in enumerate(issues, 1):
            print(f"  {i}. {issue}")
        sys.exit(1)
    else:
        print(f"All checks passed. {plugin_count} plugin(s) found, {len(enabled_ids)} enabled.")


def main():
    parser = argparse.ArgumentParser(description="termkit Plugin Manager")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # list
    subparsers.add_parser("list", help="List all plugins")

    # info
    info_parser = subparsers.add_parser("info", help="Show plugin details")
    info_parser.add_argument("plugin_id", help="Plugin ID")

    # order
    subparsers.add_parser("order", help="Show the dependency load order")

    # enable
    enable_parser = subparsers.add_parser("enable", help="Enable a plugin")
    enable_parser.add_argument("plugin_id", help="Plugin ID")

    # disable
    disable_parser = subparsers.add_parser("disable", help="Disable a plugin")
    disable_parser.add_argument("plugin_id", help="Plugin ID")
    disable_parser.add_argument("--cascade", action="store_true", help="Also disable plugins that depend on it")

    # install
    install_parser = subparsers.add_parser("install", help="Install a plugin from local path")
    install_parser.add_argument("path", help="Path to a plugin module or package")

    # doctor
    subparsers.add_parser("doctor", help="Run health checks")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    commands = {
        "list": cmd_list,
        "info": cmd_info,
        "order": cmd_order,
        "enable": cmd_enable,
        "disable": cmd_disable,
        "install": cmd_install,
        "doctor": cmd_doctor,
    }

    commands[args.command](args)


if __name__ == "__main__":
    main()
