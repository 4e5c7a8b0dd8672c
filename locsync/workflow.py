"""
Run the Translate, Handoff and Handback modes over every resource file and locale.

Each (resource file, locale) pair is loaded, reconciled and persisted before the
next one starts. Fatal problems raise; per-key problems are logged and collected.
"""
import logging
import os
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional

from tqdm import tqdm

from locsync.errors import ProviderError, ValidationError
from locsync.locale_catalog import LocaleCatalog
from locsync.overrides import OverrideConfiguration
from locsync.reconciler import (
    ReconciliationConflict,
    TranslateFn,
    handback_resources,
    handoff_rows,
    prune_empty_baseline,
    translate_resources,
)
from locsync.records import HandbackRecord, group_handback_records, read_records, write_records
from locsync.resource_store import ResourceStore
from locsync.translation_validator import check_encoding_and_mojibake, placeholder_mismatches

logger = logging.getLogger(__name__)

HANDOFF_FILE_FORMAT = "{prefix}-{locale}-UTF8.csv"
FAILED_TRANSLATIONS_FILE_FORMAT = "FailedTranslations-{date}-{locale}-UTF8.csv"


@dataclass
class RunResult:
    """What a workflow run produced."""
    mode: str
    files_processed: int = 0
    written_paths: List[str] = field(default_factory=list)
    conflicts: List[ReconciliationConflict] = field(default_factory=list)
    residuals: List[HandbackRecord] = field(default_factory=list)
    report_path: Optional[str] = None

    @property
    def has_residuals(self) -> bool:
        return bool(self.residuals)


def select_locales(catalog: LocaleCatalog, requested: Optional[Iterable[str]]) -> List[str]:
    """
    Resolve the locale allow-list against the catalog.

    Without an allow-list every non-baseline locale is selected. A requested
    locale that only resolves to the baseline locale is rejected.
    """
    requested = [locale for locale in (requested or []) if locale]
    if not requested:
        return catalog.target_locales()

    selected = []
    for locale in requested:
        resolved = catalog.resolve(locale)
        if catalog.is_baseline(resolved):
            raise ValidationError(f"Locale '{locale}' does not resolve to a configured target locale.")
        if resolved != locale:
            logger.info("Using locale '%s' for requested locale '%s'.", resolved, locale)
        if resolved not in selected:
            selected.append(resolved)
    return selected


def select_handback_locale(catalog: LocaleCatalog, requested: Optional[Iterable[str]]) -> str:
    requested = [locale for locale in (requested or []) if locale]
    if len(requested) != 1:
        raise ValidationError(
            f"Handback needs exactly one locale, got {len(requested)}. Please use one locale per localization handback."
        )
    return select_locales(catalog, requested)[0]


def resolve_input_file(input_file: Optional[str], base_dir: Optional[str] = None) -> str:
    """
    Locate the handback CSV file.

    The path is tried as given, then relative to ``base_dir``.

    Raises:
        ValidationError: If no file was given, it cannot be found, or it is not a .csv file.
    """
    if not input_file:
        raise ValidationError("No input file specified. Need input file to run in handback mode.")

    candidates = [input_file]
    if base_dir and not os.path.isabs(input_file):
        candidates.append(os.path.join(base_dir, input_file))
    for candidate in candidates:
        if os.path.isfile(candidate):
            break
    else:
        raise ValidationError(f"Couldn't find the input file '{input_file}'! Please use the -i flag.")

    if os.path.splitext(candidate)[1].lower() != '.csv':
        raise ValidationError(
            "Only .csv file inputs supported. Columns are FileName, FieldName, EnglishString, "
            "TranslatedString, or EnglishString, TranslatedString."
        )
    return candidate


class LocalizationWorkflow:
    """Drives the reconciliation functions across resource files and locales."""

    def __init__(self, store: ResourceStore, overrides: OverrideConfiguration, output_dir: str = '.',
                 handoff_file_prefix: str = 'StringResources', dry_run: bool = False):
        self.store = store
        self.catalog = store.catalog
        self.overrides = overrides
        self.output_dir = output_dir
        self.handoff_file_prefix = handoff_file_prefix
        self.dry_run = dry_run

    @property
    def baseline_locale(self) -> str:
        return self.catalog.baseline_locale

    def translate(self, resource_names: List[str], locales: List[str], translate_fn: TranslateFn) -> RunResult:
        """
        Fill missing translations from overrides and the translation service.

        Raises:
            ProviderError: On the first failed service call. Files saved before it stay on disk;
                the resource file being processed for that locale is not saved.
        """
        result = RunResult('translate')
        for resource_name in tqdm(resource_names, desc="Translating", unit="file"):
            baseline = self.store.load(resource_name, self.baseline_locale)

            empty_keys = prune_empty_baseline(baseline)
            if empty_keys:
                logger.info("Removing %d empty key(s) from baseline '%s': %s",
                            len(empty_keys), resource_name, ', '.join(empty_keys))
                result.written_paths.append(self.store.save(resource_name, self.baseline_locale, baseline))

            for locale in locales:
                target = self.store.load(resource_name, locale)
                try:
                    summary = translate_resources(
                        resource_name, baseline, target, locale, self.overrides,
                        translate_fn, self.baseline_locale
                    )
                except ProviderError:
                    logger.error("Translation of '%s' into %s failed; the file was not updated.",
                                 resource_name, locale)
                    raise
                logger.info(
                    "%s [%s]: %d translated, %d overridden, %d ignored removed, %d orphaned removed.",
                    resource_name, locale, len(summary.translated), len(summary.overridden),
                    len(summary.ignored), len(summary.orphans)
                )
                result.written_paths.append(self.store.save(resource_name, locale, target))
            result.files_processed += 1
        return result

    def handoff(self, resource_names: List[str], locales: List[str]) -> RunResult:
        """Write one CSV per locale with every baseline string and its current translation."""
        result = RunResult('handoff')
        if not self.dry_run:
            os.makedirs(self.output_dir, exist_ok=True)

        records_per_locale: Dict[str, List[HandbackRecord]] = {locale: [] for locale in locales}
        for resource_name in tqdm(resource_names, desc="Exporting", unit="file"):
            logger.debug("Writing resource values from %s", resource_name)
            baseline = self.store.load(resource_name, self.baseline_locale)
            targets = {locale: self.store.load(resource_name, locale) for locale in locales}
            for locale, rows in handoff_rows(resource_name, baseline, targets).items():
                records_per_locale[locale].extend(rows)
            result.files_processed += 1

        for locale in locales:
            output_path = os.path.join(
                self.output_dir, HANDOFF_FILE_FORMAT.format(prefix=self.handoff_file_prefix, locale=locale)
            )
            if self.dry_run:
                logger.info("[Dry Run] Would write %d record(s) to '%s'.", len(records_per_locale[locale]), output_path)
                continue
            count = write_records(output_path, records_per_locale[locale])
            logger.info("Generated localization handoff for %s: %d record(s) in '%s'.", locale, count, output_path)
            result.written_paths.append(output_path)
        return result

    def handback(self, resource_names: List[str], locale: str, input_file: str) -> RunResult:
        """
        Import human translations for one locale.

        Records that cannot be applied (unknown file or key, or rejected by a
        custom override) are written to a dated report in the output directory.
        """
        result = RunResult('handback')

        for problem in check_encoding_and_mojibake(input_file):
            logger.warning(problem)
        records = read_records(input_file)

        by_file, by_value = group_handback_records(records)
        logger.info("Loaded handback records for %d resource file(s) and %d untargeted string(s) from '%s'.",
                    len(by_file), len(by_value), input_file)

        consumed_values = set()
        for resource_name in tqdm(resource_names, desc=f"Importing {locale}", unit="file"):
            has_records = resource_name in by_file or bool(by_value)
            baseline = self.store.load(resource_name, self.baseline_locale)
            target = self.store.load(resource_name, locale)
            pending = by_file.get(resource_name, {})

            summary = handback_resources(
                resource_name, baseline, target, locale, self.overrides, pending, by_value
            )
            accepted = {key: target[key] for key in summary.accepted}
            for key in placeholder_mismatches(baseline, accepted):
                logger.warning("Handback value for '%s.%s' (%s) does not keep the placeholders of '%s'.",
                               resource_name, key, locale, baseline[key])
            consumed_values |= summary.consumed_values
            result.conflicts.extend(summary.conflicts)
            if not pending and resource_name in by_file:
                del by_file[resource_name]

            if not has_records and not (summary.ignored or summary.orphans):
                continue
            logger.info("%s [%s]: %d accepted, %d ignored, %d conflict(s).",
                        resource_name, locale, len(summary.accepted), len(summary.ignored),
                        len(summary.conflicts))
            result.written_paths.append(self.store.save(resource_name, locale, target))
            result.files_processed += 1

        for value in consumed_values:
            by_value.pop(value, None)

        result.residuals = [record for records in by_file.values() for record in records.values()]
        result.residuals.extend(by_value.values())
        if result.residuals:
            result.report_path = self._write_residual_report(locale, result.residuals)
        return result

    def _write_residual_report(self, locale: str, residuals: List[HandbackRecord]) -> str:
        report_path = os.path.join(
            self.output_dir,
            FAILED_TRANSLATIONS_FILE_FORMAT.format(date=date.today().strftime('%m.%d.%Y'), locale=locale)
        )
        if self.dry_run:
            logger.warning("[Dry Run] Would write %d unresolved translation(s) to '%s'.", len(residuals), report_path)
            return report_path

        os.makedirs(self.output_dir, exist_ok=True)
        write_records(report_path, residuals)
        logger.warning(
            "Not all translations were correctly matched. The remaining (%d) localization(s) have been "
            "written to a file for manual resolution: %s", len(residuals), report_path
        )
        return report_path
