"""
Command-line entry point.

    locsync -d <enlistment dir> [-m translate|handback|handoff] [-i handback.csv]
            [-l LOCALE ...] [-r RESOURCE ...] [-v]

This is the only place where errors turn into an exit status.
"""
import argparse
import logging
import os
import sys
from typing import List, Optional

from locsync.app_config import AppConfig, load_app_config
from locsync.errors import ConfigError, LocalizationError, ValidationError
from locsync.locale_catalog import LocaleCatalog
from locsync.overrides import OverrideConfiguration, load_override_config
from locsync.resource_store import ResourceStore
from locsync.translation_provider import build_provider
from locsync.workflow import (
    LocalizationWorkflow,
    RunResult,
    resolve_input_file,
    select_handback_locale,
    select_locales,
)

logger = logging.getLogger(__name__)

MODES = ('translate', 'handback', 'handoff')

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_RESIDUALS = 3


def _split_list(values: Optional[List[str]]) -> List[str]:
    """Accept both ``-l de fr`` and ``-l de,fr``."""
    items: List[str] = []
    for value in values or []:
        items.extend(part.strip() for part in value.split(',') if part.strip())
    return items


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='locsync',
        description="Reconcile localized string resources against the baseline locale."
    )
    parser.add_argument('-m', '--mode', type=str.lower, choices=MODES, default='translate',
                        help="Operation mode (default: translate)")
    parser.add_argument('-d', '--dir', dest='enlistment_dir', required=True,
                        help="Enlistment directory")
    parser.add_argument('-i', '--input', dest='input_file',
                        help="Handback CSV file (handback mode only)")
    parser.add_argument('-r', '--files', nargs='*', default=[],
                        help="Limit to specific resource files (names without extension)")
    parser.add_argument('-l', '--locales', nargs='*', default=[],
                        help="Limit to specific locales")
    parser.add_argument('-c', '--config', dest='config_path',
                        help="Path to config.yaml (default: $LOCSYNC_CONFIG_FILE or ./config.yaml)")
    parser.add_argument('-o', '--output-dir',
                        help="Directory for handoff files and failure reports")
    parser.add_argument('--dry-run', action='store_true',
                        help="Compute everything but write no files")
    parser.add_argument('-v', '--verbose', action='store_true',
                        help="Print all messages")
    return parser


def run(args: argparse.Namespace, app_config: AppConfig) -> RunResult:
    """Validate the run inputs, then execute the selected mode."""
    if not os.path.isdir(args.enlistment_dir):
        raise ValidationError(f"Enlistment directory '{args.enlistment_dir}' does not exist.")

    catalog = LocaleCatalog(app_config.supported_locales)
    dry_run = app_config.dry_run or args.dry_run
    store = ResourceStore(
        os.path.join(args.enlistment_dir, app_config.resources_subdir),
        catalog,
        extension=app_config.resource_extension,
        dry_run=dry_run
    )
    requested_locales = _split_list(args.locales)
    requested_files = _split_list(args.files)
    output_dir = args.output_dir or app_config.output_dir

    if args.mode == 'handback':
        input_file = resolve_input_file(args.input_file, os.getcwd())
        locales = [select_handback_locale(catalog, requested_locales)]
    else:
        input_file = None
        locales = select_locales(catalog, requested_locales)
    logger.debug("Using locales: %s", ', '.join(locales))

    resource_names = store.discover_resource_names(requested_files)
    logger.debug("Resource files: %s", ', '.join(resource_names))

    if args.mode == 'handoff':
        overrides = OverrideConfiguration()
    else:
        overrides = load_override_config(app_config.override_config_path)

    workflow = LocalizationWorkflow(
        store, overrides,
        output_dir=output_dir,
        handoff_file_prefix=app_config.handoff_file_prefix,
        dry_run=dry_run
    )

    if args.mode == 'translate':
        provider = build_provider(app_config.provider_settings, dict(os.environ))
        return workflow.translate(resource_names, locales, provider.translate)
    if args.mode == 'handoff':
        return workflow.handoff(resource_names, locales)
    return workflow.handback(resource_names, locales[0], input_file)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        app_config = load_app_config(args.config_path, verbose=args.verbose)
    except ConfigError as config_exc:
        print(f"Error: {config_exc}", file=sys.stderr)
        return EXIT_FAILURE

    try:
        result = run(args, app_config)
    except LocalizationError as exc:
        logger.error("%s", exc)
        return EXIT_FAILURE
    except OSError as os_exc:
        logger.error("File system error: %s", os_exc)
        return EXIT_FAILURE

    if result.has_residuals:
        logger.warning("%s finished with %d unresolved record(s); see '%s'.",
                       result.mode.capitalize(), len(result.residuals), result.report_path)
        return EXIT_RESIDUALS

    logger.info("Done! %d resource file(s) processed.", result.files_processed)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
