"""Command line entry point for inspecting outlines from a terminal."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, TextIO, get_args, get_origin, get_type_hints

from .errors import OutlinerError
from .outline.model import Document
from .services.settings import DEPTH_CHOICES, Settings, SettingsStore
from .sidebar import Sidebar
from .utils import logging as logging_utils

_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_LOGGER = logging.getLogger(__name__)
_FALSE_VALUES = {"0", "false", "no", "off", "disabled"}


def configure_logging(debug: bool = False, *, force: bool = False) -> None:
    """Configure logging for the command line tool."""

    level = logging.DEBUG if debug else logging.INFO
    logging_utils.setup_logging(level, stream=sys.stderr, force=force)
    _LOGGER.debug("Logging configured (level=%s)", logging.getLevelName(level))


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        settings = active_store.load(overrides=overrides)
    except (OSError, ValueError) as exc:
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        settings = Settings()
    return settings


def main(argv: Sequence[str] | None = None, *, stdout: TextIO | None = None) -> int:
    """Entry point invoked by the `outliner` console script."""

    out = stdout or sys.stdout
    args = _parse_cli_args(argv)

    debug = _env_flag("OUTLINER_DEBUG", default=False)
    configure_logging(debug)

    settings_path = args.settings_path or os.environ.get("OUTLINER_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    settings_store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc

    overrides_mapping: Dict[str, Any] | None = cli_overrides or None
    settings = load_settings(resolved_path, store=settings_store, overrides=overrides_mapping)

    if args.dump_settings:
        _dump_settings(settings, settings_store, overrides=cli_overrides, stream=out)
        return 0

    if settings.debug_logging and not debug:
        configure_logging(True, force=True)

    if args.command is None:
        print("A command is required (tree, jump, sidebar, cycle-global).", file=sys.stderr)
        return 2

    sidebar = Sidebar(settings)
    try:
        document = sidebar.open(args.file)
        return _COMMANDS[args.command](sidebar, document, args, out)
    except OutlinerError as exc:
        _LOGGER.debug("Command %s failed: %s", args.command, exc.to_dict())
        print(str(exc), file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"Unable to read {args.file}: {exc}", file=sys.stderr)
        return 1


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------
def _run_tree(sidebar: Sidebar, document: Document, args: argparse.Namespace, out: TextIO) -> int:
    view = sidebar.request_tree_view(document)
    out.write(view.render())
    return 0


def _run_jump(sidebar: Sidebar, document: Document, args: argparse.Namespace, out: TextIO) -> int:
    node = document.find(args.heading)
    if node is None:
        print(f"No heading titled {args.heading!r} in {document.source_id}", file=sys.stderr)
        return 1
    origin = sidebar.source_view(document)
    view = sidebar.dispatcher.jump(origin, node, args.depth)
    out.write(view.render())
    return 0


def _run_sidebar(sidebar: Sidebar, document: Document, args: argparse.Namespace, out: TextIO) -> int:
    panel = sidebar.request_sidebar(document)
    out.write(panel.render())
    return 0


def _run_cycle_global(sidebar: Sidebar, document: Document, args: argparse.Namespace, out: TextIO) -> int:
    view = sidebar.source_view(document)
    for _ in range(max(0, args.times)):
        sidebar.dispatcher.cycle_global(view)
    out.write(view.render())
    return 0


_COMMANDS = {
    "tree": _run_tree,
    "jump": _run_jump,
    "sidebar": _run_sidebar,
    "cycle-global": _run_cycle_global,
}


# ---------------------------------------------------------------------------
# Argument handling
# ---------------------------------------------------------------------------
def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _parse_cli_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="outliner",
        description="Render outline views of Markdown and Org documents.",
    )
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings payload and exit.",
    )
    parser.add_argument(
        "--settings-path",
        metavar="PATH",
        help="Override the default ~/.outliner/settings.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings for this run (repeatable).",
    )
    commands = parser.add_subparsers(dest="command")

    tree = commands.add_parser("tree", help="Print every heading of FILE.")
    tree.add_argument("file", metavar="FILE")

    jump = commands.add_parser("jump", help="Print a clone narrowed to one heading.")
    jump.add_argument("file", metavar="FILE")
    jump.add_argument("--heading", required=True, help="Title of the heading to jump to.")
    jump.add_argument("--depth", choices=DEPTH_CHOICES, default=None, help="How much of the subtree to show.")

    side = commands.add_parser("sidebar", help="Print the upcoming and to-do lists.")
    side.add_argument("file", metavar="FILE")

    cycle = commands.add_parser("cycle-global", help="Print FILE after N global visibility cycles.")
    cycle.add_argument("file", metavar="FILE")
    cycle.add_argument("--times", type=int, default=1)
    return parser.parse_args(argv)


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if not items:
        return overrides

    fields = Settings.__dataclass_fields__  # type: ignore[attr-defined]
    type_hints = get_type_hints(Settings)
    for entry in items:
        if "=" not in entry:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        key, raw_value = entry.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError("Override is missing a field name.")
        if key not in fields:
            raise ValueError(f"Unknown setting '{key}'.")
        annotation = type_hints.get(key, fields[key].type)
        overrides[key] = _coerce_value(annotation, raw_value.strip())
    return overrides


def _coerce_value(annotation: Any, raw_value: str) -> Any:
    target = _resolve_annotation(annotation)
    normalized = raw_value.strip()

    if target is str or target is Any:
        return normalized
    if target is bool:
        return _parse_bool(normalized)
    if target is int:
        return int(normalized, 10)
    if target is float:
        return float(normalized)
    if target is list:
        if not normalized.startswith("["):
            return [item for item in normalized.replace(",", " ").split() if item]
        try:
            return json.loads(normalized)
        except json.JSONDecodeError as exc:
            raise ValueError("List overrides must be valid JSON arrays") from exc
    return normalized


def _resolve_annotation(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is None:
        return annotation
    if origin in {list, dict}:
        return origin
    args = [arg for arg in get_args(annotation) if arg is not type(None)]
    if not args:
        return origin
    return args[0]


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def _dump_settings(
    settings: Settings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    metadata = {
        "path": str(store.path),
        "log_path": str(logging_utils.get_log_path() or ""),
        "cli_overrides": sorted(overrides.keys()),
        "environment_variables": _active_env_overrides(),
    }
    output = {"settings": asdict(settings), "meta": metadata}
    json.dump(output, destination, indent=2)
    destination.write("\n")


def _active_env_overrides() -> list[str]:
    return sorted(name for name in os.environ if name.startswith("OUTLINER_"))


if __name__ == "__main__":  # pragma: no cover - manual invocation
    raise SystemExit(main())
