#!/usr/bin/env python3
"""
BTCU CLI

Command-line interface for replaying contract scenarios and inspecting
configuration.

Usage:
    btcu <command> [subcommand] [options]

Commands:
    scenario    Validate or replay YAML scenarios
    contracts   List contract entry points
    config      Configuration management
    errors      Show the contract error-code table

Copyright (c) 2026 BTC University. All rights reserved.
"""

from __future__ import annotations

import argparse
import json
import sys
from enum import Enum
from typing import Any, List, Optional

import yaml

from btcu import __version__
from btcu.certificate import CertificateRegistry
from btcu.config import ConfigError, get_config_manager
from btcu.course import CourseLedger
from btcu.errors import ErrorCode
from btcu.observability import ContractLayer, configure_logging, get_logger
from btcu.scenario import ScenarioError, load_scenario, replay_scenario
from btcu.token import MockSbtcToken, TokenErrorCode

logger = get_logger("cli", ContractLayer.CLI)

CONTRACT_CLASSES = (CertificateRegistry, CourseLedger, MockSbtcToken)


class OutputFormat(Enum):
    """Output format options."""
    JSON = "json"
    YAML = "yaml"
    TABLE = "table"
    TEXT = "text"


class CLIError(Exception):
    """CLI error with exit code."""
    def __init__(self, message: str, exit_code: int = 1):
        super().__init__(message)
        self.exit_code = exit_code


def format_output(data: Any, fmt: OutputFormat = OutputFormat.JSON) -> str:
    """Format data for output."""
    if fmt == OutputFormat.JSON:
        return json.dumps(data, indent=2, default=str)
    elif fmt == OutputFormat.YAML:
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)
    elif fmt == OutputFormat.TABLE:
        return _format_table(data)
    else:
        return str(data)


def _format_table(data: Any) -> str:
    """Format data as ASCII table."""
    if isinstance(data, dict) and len(data) == 1:
        (only,) = data.values()
        if isinstance(only, list):
            data = only
    if isinstance(data, list) and data and isinstance(data[0], dict):
        headers = list(data[0].keys())
        rows = [[str(row.get(h, ""))[:48] for h in headers] for row in data]
        widths = [max(len(h), max(len(r[i]) for r in rows)) for i, h in enumerate(headers)]

        lines = []
        lines.append(" | ".join(h.ljust(widths[i]) for i, h in enumerate(headers)))
        lines.append("-+-".join("-" * w for w in widths))
        for row in rows:
            lines.append(" | ".join(c.ljust(widths[i]) for i, c in enumerate(row)))
        return "\n".join(lines)
    elif isinstance(data, dict):
        return "\n".join(f"{k}: {v}" for k, v in data.items())
    return str(data)


class BtcuCLI:
    """Main CLI application."""

    def __init__(self):
        self.exit_code = 0
        self.parser = argparse.ArgumentParser(
            prog="btcu",
            description="BTC University contract simulator",
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        self.parser.add_argument(
            "--version", "-V",
            action="version",
            version=f"btcu {__version__}",
        )
        self.parser.add_argument(
            "--format", "-f",
            choices=["json", "yaml", "table", "text"],
            default="json",
            help="Output format (default: json)",
        )
        self.parser.add_argument(
            "--config", "-c",
            help="Configuration file (YAML)",
        )
        self.parser.add_argument(
            "--log-level",
            choices=["debug", "info", "warning", "error"],
            help="Log level (overrides observability.log_level)",
        )
        self.parser.add_argument(
            "--quiet", "-q",
            action="store_true",
            help="Suppress non-essential output",
        )

        self.subparsers = self.parser.add_subparsers(dest="command", help="Commands")
        self._register_commands()

    def _register_commands(self) -> None:
        """Register all command groups."""
        self._register_scenario_commands()
        self._register_config_commands()
        self.subparsers.add_parser("contracts", help="List contract entry points")
        self.subparsers.add_parser("errors", help="Show the error-code table")

    def _register_scenario_commands(self) -> None:
        """Register scenario subcommands."""
        scenario = self.subparsers.add_parser("scenario", help="Scenario replay")
        scenario_sub = scenario.add_subparsers(dest="subcommand")

        # scenario validate
        validate = scenario_sub.add_parser("validate", help="Validate a scenario file")
        validate.add_argument("file", help="Scenario YAML file")

        # scenario run
        run = scenario_sub.add_parser("run", help="Replay a scenario file")
        run.add_argument("file", help="Scenario YAML file")

    def _register_config_commands(self) -> None:
        """Register config subcommands."""
        config = self.subparsers.add_parser("config", help="Configuration management")
        config_sub = config.add_subparsers(dest="subcommand")

        # config get
        get = config_sub.add_parser("get", help="Get configuration value")
        get.add_argument("path", help="Config path (e.g., ledger.min_sbtc_balance)")

        # config show
        config_sub.add_parser("show", help="Show all configuration")

        # config validate
        config_sub.add_parser("validate", help="Validate configuration")

        # config schema
        config_sub.add_parser("schema", help="Export configuration schema")

    def run(self, args: Optional[List[str]] = None) -> int:
        """Run the CLI."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 0

        self.exit_code = 0
        try:
            self._setup(parsed)
            fmt = OutputFormat(parsed.format)
            result = self._dispatch(parsed)

            if result is not None:
                print(format_output(result, fmt))

            return self.exit_code

        except CLIError as e:
            if not parsed.quiet:
                print(f"Error: {e}", file=sys.stderr)
            return e.exit_code

        except (ConfigError, ScenarioError) as e:
            if not parsed.quiet:
                print(f"Error: {e}", file=sys.stderr)
                for detail in getattr(e, "errors", []):
                    print(f"  {detail}", file=sys.stderr)
            return 1

    def _setup(self, args: argparse.Namespace) -> None:
        mgr = get_config_manager()
        if args.config:
            mgr.load_from_file(args.config)
        obs = mgr.config.observability
        configure_logging(level=args.log_level or obs.log_level.get(), fmt=obs.log_format.get())

    def _dispatch(self, args: argparse.Namespace) -> Any:
        """Dispatch command to handler."""
        cmd = args.command
        subcmd = getattr(args, "subcommand", None)

        handler_name = f"_handle_{cmd}_{subcmd}" if subcmd else f"_handle_{cmd}"
        handler = getattr(self, handler_name, None)

        if handler is None:
            raise CLIError(f"Unknown command: {cmd} {subcmd or ''}".strip())

        logger.debug(f"dispatch {handler_name}", operation=cmd)
        return handler(args)

    # Scenario handlers
    def _handle_scenario_validate(self, args: argparse.Namespace) -> Any:
        doc = load_scenario(args.file)
        return {"file": args.file, "name": doc["name"], "steps": len(doc["steps"]), "valid": True}

    def _handle_scenario_run(self, args: argparse.Namespace) -> Any:
        doc = load_scenario(args.file)
        report = replay_scenario(doc, base_config=get_config_manager().config)
        if not report.passed:
            self.exit_code = 1
        return report.to_dict()

    # Config handlers
    def _handle_config_get(self, args: argparse.Namespace) -> Any:
        mgr = get_config_manager()
        return {"path": args.path, "value": mgr.get(args.path)}

    def _handle_config_show(self, args: argparse.Namespace) -> Any:
        return get_config_manager().config.to_dict()

    def _handle_config_validate(self, args: argparse.Namespace) -> Any:
        errors = get_config_manager().validate()
        if errors:
            self.exit_code = 1
        return {"valid": len(errors) == 0, "errors": errors}

    def _handle_config_schema(self, args: argparse.Namespace) -> Any:
        return get_config_manager().export_schema()

    # Reference handlers
    def _handle_contracts(self, args: argparse.Namespace) -> Any:
        rows = []
        for contract_cls in CONTRACT_CLASSES:
            for name, entry in sorted(contract_cls.entry_points().items()):
                rows.append({
                    "contract": contract_cls.contract_name,
                    "function": name,
                    "kind": "read-only" if entry.read_only else "public",
                    "alias_of": entry.name if name != entry.name else "",
                })
        return {"entry_points": rows}

    def _handle_errors(self, args: argparse.Namespace) -> Any:
        rows = [
            {"code": int(code), "name": code.name, "scope": "contract", "description": code.description}
            for code in ErrorCode
        ]
        rows.extend(
            {"code": int(code), "name": code.name, "scope": "mock-sbtc-token", "description": code.description}
            for code in TokenErrorCode
        )
        return {"errors": rows}


def main() -> int:
    """CLI entry point."""
    cli = BtcuCLI()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
