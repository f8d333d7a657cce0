"""CLI entrypoints for projconf commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from .catalog import CatalogError
from .collector import CollectionError
from .config import ConfigError, load_config
from .logging import configure_logging
from .maintenance import (
    find_backups,
    find_configured_projects,
    read_status,
    remove_backups,
    update_projects,
)
from .materialize import SelectionMode, SelectionPlan, parse_asset_list
from .provision import ProvisionError, Provisioner
from .report import ReportRenderer, format_size

_MODES = [mode.value for mode in SelectionMode]


def _add_logging_options(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    def _default(value: object) -> object:
        return argparse.SUPPRESS if suppress_default else value

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=_default(False),
        help="Increase log verbosity for troubleshooting.",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        default=_default(False),
        help="Only log warnings and errors.",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=_default(None),
        help="Also write debug-level logs to this file.",
    )


def _add_path_argument(parser: argparse.ArgumentParser, help_text: str) -> None:
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help=help_text,
    )


def _add_selection_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--global-root",
        type=Path,
        help="Directory holding the shared config (skills/, agents/, settings.json, ...).",
    )
    parser.add_argument(
        "--mode",
        choices=_MODES,
        help="Skill selection: auto-detect, manual list, or full copy (default: auto).",
    )
    parser.add_argument(
        "--assets",
        action="append",
        default=[],
        help="Comma separated asset identifiers or group names for --mode manual.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="projconf",
        description="Provision per-project assistant config with auto-selected skills.",
    )
    _add_logging_options(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    setup_parser = subparsers.add_parser(
        "setup",
        help="Create the project config directory and copy relevant skills.",
    )
    _add_logging_options(setup_parser, suppress_default=True)
    _add_path_argument(setup_parser, "Path to the project root (defaults to current directory).")
    _add_selection_options(setup_parser)
    setup_parser.add_argument(
        "--catalog",
        type=Path,
        help="Detection/asset catalog YAML to use instead of the bundled one.",
    )
    setup_parser.add_argument(
        "--force",
        action="store_true",
        help="Replace an existing config directory (it is backed up first).",
    )

    classify_parser = subparsers.add_parser(
        "classify",
        help="Show the detected project type and the skills auto mode would select.",
    )
    _add_logging_options(classify_parser, suppress_default=True)
    _add_path_argument(classify_parser, "Path to the project root (defaults to current directory).")
    classify_parser.add_argument("--catalog", type=Path, help="Catalog YAML to classify with.")
    classify_parser.add_argument(
        "--json",
        action="store_true",
        help="Emit the classification as JSON.",
    )

    status_parser = subparsers.add_parser(
        "status",
        help="Show the state of the project's config directory.",
    )
    _add_logging_options(status_parser, suppress_default=True)
    _add_path_argument(status_parser, "Path to the project root (defaults to current directory).")

    update_parser = subparsers.add_parser(
        "update-all",
        help="Re-run setup for every project under a directory that already has a config.",
    )
    _add_logging_options(update_parser, suppress_default=True)
    _add_path_argument(update_parser, "Directory to search (defaults to current directory).")
    _add_selection_options(update_parser)
    update_parser.add_argument(
        "--yes",
        action="store_true",
        help="Apply the update; without it the matching projects are only listed.",
    )

    clean_parser = subparsers.add_parser(
        "clean-backups",
        help="Delete config backup directories left behind by --force.",
    )
    _add_logging_options(clean_parser, suppress_default=True)
    _add_path_argument(clean_parser, "Directory to search (defaults to current directory).")
    clean_parser.add_argument(
        "--config-dir",
        default=".claude",
        help="Name of the config directory whose backups should be removed.",
    )
    clean_parser.add_argument(
        "--yes",
        action="store_true",
        help="Delete the backups; without it they are only listed.",
    )

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP classification service.")
    _add_logging_options(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    return parser


def _selection_plan(args: argparse.Namespace) -> SelectionPlan | None:
    assets = parse_asset_list(getattr(args, "assets", None))
    if args.mode is None and not assets:
        return None
    mode = SelectionMode.parse(args.mode) if args.mode else SelectionMode.MANUAL
    return SelectionPlan(mode=mode, assets=assets)


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for projconf commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        verbose=bool(args.verbose), quiet=bool(args.quiet), log_file=args.log_file
    )

    provisioner = Provisioner()
    renderer = provisioner.renderer

    try:
        if args.command == "setup":
            _run_setup(args, provisioner, renderer)
        elif args.command == "classify":
            _run_classify(args, provisioner, renderer)
        elif args.command == "status":
            _run_status(args, renderer)
        elif args.command == "update-all":
            _run_update_all(args, provisioner)
        elif args.command == "clean-backups":
            _run_clean_backups(args)
        elif args.command == "serve":
            from .service import run_service

            run_service(host=args.host, port=args.port)
        else:  # pragma: no cover - argparse enforces choices
            parser.exit(1, "Unknown command\n")
    except (FileExistsError, FileNotFoundError, NotADirectoryError) as exc:
        parser.exit(1, f"{exc}\n")
    except (CollectionError, ProvisionError) as exc:
        parser.exit(1, f"projconf {args.command} failed: {exc}\n")
    except (CatalogError, ConfigError) as exc:
        parser.exit(1, f"Invalid configuration: {exc}\n")
    except ValueError as exc:
        parser.exit(2, f"{exc}\n")


def _run_setup(
    args: argparse.Namespace, provisioner: Provisioner, renderer: ReportRenderer
) -> None:
    outcome = provisioner.run_setup(
        args.path,
        global_root=args.global_root,
        plan=_selection_plan(args),
        replace=bool(args.force),
        catalog_path=args.catalog,
    )
    print(renderer.summary(outcome))


def _run_classify(
    args: argparse.Namespace, provisioner: Provisioner, renderer: ReportRenderer
) -> None:
    run = provisioner.classify(args.path, catalog_path=args.catalog)
    if args.json:
        payload = run.result.to_dict()
        payload["groups"] = list(run.groups)
        payload["assets"] = sorted(run.assets)
        print(json.dumps(payload, indent=2))
        return
    print(
        renderer.classification(
            run.root.name, run.result, run.catalog, groups=run.groups, assets=run.assets
        )
    )


def _run_status(args: argparse.Namespace, renderer: ReportRenderer) -> None:
    root = Path(args.path).expanduser().resolve()
    config = load_config(root)
    status = read_status(
        root,
        config_dir=config.config_dir,
        link_dirs=config.link_dirs,
        copied_files=sorted(set(config.copy_files.values())),
    )
    print(renderer.status(status))


def _run_update_all(args: argparse.Namespace, provisioner: Provisioner) -> None:
    search_dir = Path(args.path).expanduser().resolve()
    projects = find_configured_projects(search_dir, global_root=args.global_root)
    if not projects:
        raise FileNotFoundError(f"No projects with a config directory found under {search_dir}")

    print(f"Found {len(projects)} projects with configs:")
    for project in projects:
        print(f"   • {project.name}")
    if not args.yes:
        print("Re-run with --yes to update them.")
        return

    results = update_projects(
        projects, provisioner, global_root=args.global_root, plan=_selection_plan(args)
    )
    failed = [result for result in results if result.error]
    for result in results:
        marker = "❌" if result.error else "✅"
        detail = result.error or result.outcome.classification.label  # type: ignore[union-attr]
        print(f"{marker} {result.project.name}: {detail}")
    if failed:
        raise ProvisionError(f"{len(failed)} of {len(results)} projects failed to update")
    print("All projects updated!")


def _run_clean_backups(args: argparse.Namespace) -> None:
    search_dir = Path(args.path).expanduser().resolve()
    backups = find_backups(search_dir, config_dir=args.config_dir)
    if not backups:
        print("No config backups found")
        return

    print(f"Found {len(backups)} backup directories:")
    current = None
    for entry in backups:
        if entry.project != current:
            print(f"{entry.project}:")
            current = entry.project
        print(f"   • {entry.path.name} ({format_size(entry.size)})")
    if not args.yes:
        print("Re-run with --yes to delete them permanently.")
        return

    removed = remove_backups(backups)
    print(f"Cleaned up {removed} backup directories!")


if __name__ == "__main__":
    main(sys.argv[1:])
