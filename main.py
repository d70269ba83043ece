#!/usr/bin/env python3
"""
ParaCore - Parametrische Feature-History
Einstiegspunkt

Lädt die mitgelieferten Extensions, aktiviert ein Tool gegen einen frischen
CodeManager und gibt das Ergebnis des letzten Features aus.

    python main.py --list
    python main.py base-box --param width=25 --save box.json
    python main.py --load box.json
"""

import argparse
import json
import sys
from typing import Dict, List, Optional

from loguru import logger

from config.version import APP_NAME, VERSION_FULL, VERSION_STRING, get_version_info


def _setup_logging(verbose: bool):
    logger.remove()
    logger.add(sys.stderr, format="<level>{level: <8}</level> | {message}",
               level="DEBUG" if verbose else "INFO")


def _parse_params(items: List[str]) -> Dict[str, str]:
    from extensions import ParameterError

    params = {}
    for item in items:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise ParameterError(item, "expected KEY=VALUE")
        params[key.strip()] = value.strip()
    return params


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="paracore", description=f"{APP_NAME} {VERSION_STRING}")
    parser.add_argument("tool", nargs="?", help="Extension-ID des zu aktivierenden Tools")
    parser.add_argument("--param", action="append", default=[], metavar="KEY=VALUE",
                        help="Tool-Parameter (mehrfach möglich)")
    parser.add_argument("--list", action="store_true", help="Registrierte Extensions auflisten")
    parser.add_argument("--load", metavar="PATH", help="History aus JSON laden")
    parser.add_argument("--save", metavar="PATH", help="History als JSON speichern")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug-Logging")
    parser.add_argument("--version", action="version", version=f"{APP_NAME} {VERSION_FULL}")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Startet ParaCore"""
    args = build_parser().parse_args(argv)
    _setup_logging(args.verbose)
    logger.debug(f"Version: {get_version_info()}")

    from extensions import ExtensionRegistry, ExtensionError
    from parametric import CodeManager, FeatureHistoryError
    from parametric.error_diagnostics import format_error_for_user

    registry = ExtensionRegistry()
    registry.load_builtin()

    if args.list:
        for ext in registry:
            kind = "tool" if ext.tool is not None else "-"
            print(f"{ext.id:<28} {ext.manifest.version:<8} {ext.manifest.category.value:<10} {kind}")
        return 0

    try:
        manager = CodeManager.load(args.load) if args.load else CodeManager()

        if args.tool:
            registry.activate_tool(args.tool, manager, _parse_params(args.param))

        if len(manager) == 0:
            logger.warning("History ist leer - nichts auszuwerten")
            return 1

        # Gespeichert wird auch, wenn die Auswertung danach fehlschlägt
        if args.save:
            manager.save(args.save)

        result = manager.get_result()
        print(json.dumps(result.to_dict(), indent=2))
    except (FeatureHistoryError, ExtensionError) as e:
        logger.error(format_error_for_user(e, include_technical=args.verbose))
        return 2
    except KeyError as e:
        logger.error(str(e))
        return 2
    except (OSError, ValueError) as e:
        logger.error(f"History-Datei nicht lesbar/schreibbar: {e}")
        return 2

    return 0


if __name__ == "__main__":
    sys.exit(main())
