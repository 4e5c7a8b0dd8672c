"""
Per-key reconciliation of a target-locale resource set against its baseline.

Every function here works on one resource file and mutates the target
mapping in place. Precedence, highest first: the ignore list, custom
overrides, then the mode's value source (an existing translation, the
translation service, or a human handback record). Keys absent from the
baseline never survive a pass.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, MutableMapping, Optional, Set

from locsync.locale_catalog import neutral_of
from locsync.overrides import OverrideConfiguration
from locsync.records import HandbackRecord
from locsync.translation_validator import check_key_coverage, check_placeholder_parity

logger = logging.getLogger(__name__)

# (text, from_locale, to_locale) -> translated text
TranslateFn = Callable[[str, str, str], str]


@dataclass
class TranslateSummary:
    resource_name: str
    locale: str
    translated: List[str] = field(default_factory=list)
    overridden: List[str] = field(default_factory=list)
    ignored: List[str] = field(default_factory=list)
    orphans: List[str] = field(default_factory=list)
    placeholder_mismatches: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.translated or self.overridden or self.ignored or self.orphans)


@dataclass
class ReconciliationConflict:
    """A handback value that disagrees with a custom override; the target is left untouched."""
    resource_name: str
    field_name: str
    locale: str
    baseline_value: str
    override_value: str
    handback_value: str


@dataclass
class HandbackSummary:
    resource_name: str
    locale: str
    accepted: List[str] = field(default_factory=list)
    ignored: List[str] = field(default_factory=list)
    conflicts: List[ReconciliationConflict] = field(default_factory=list)
    orphans: List[str] = field(default_factory=list)
    # English values of two-column records applied (or dropped as ignored) in this pass
    consumed_values: Set[str] = field(default_factory=set)


def prune_empty_baseline(baseline: MutableMapping[str, str]) -> List[str]:
    """
    Drop baseline entries whose value is empty.

    Returns:
        List[str]: The removed keys, sorted.
    """
    empty_keys = sorted(key for key, value in baseline.items() if not value)
    for key in empty_keys:
        del baseline[key]
    return empty_keys


def remove_orphan_keys(baseline: Mapping[str, str], target: MutableMapping[str, str]) -> List[str]:
    """Remove target keys that the baseline does not define; returns them sorted."""
    _, extra_keys = check_key_coverage(set(baseline), set(target))
    for key in extra_keys:
        del target[key]
    return sorted(extra_keys)


def _remove_ignored(target: MutableMapping[str, str], key: str) -> bool:
    if key in target:
        del target[key]
        return True
    return False


def translate_resources(
        resource_name: str,
        baseline: Mapping[str, str],
        target: MutableMapping[str, str],
        locale: str,
        overrides: OverrideConfiguration,
        translate_fn: TranslateFn,
        baseline_locale: str,
        neutralize: Callable[[str], str] = neutral_of
) -> TranslateSummary:
    """
    Fill every missing or untranslated target value.

    A target value that is absent, empty, or identical to the baseline value
    needs resolution: the custom override for the locale wins, otherwise
    ``translate_fn`` is asked for a translation into ``neutralize(locale)``.
    Values that already differ from the baseline are kept, except that a
    custom override always replaces a different value. Keys whose baseline
    value is ignored are removed from the target.

    Errors raised by ``translate_fn`` propagate; the target may then be partially
    updated and must not be persisted.

    Args:
        resource_name: Name of the resource file, for logging.
        baseline: The baseline resource set (read only).
        target: The target resource set, updated in place.
        locale: The target locale.
        overrides: Ignore list and custom overrides.
        translate_fn: Translation callback ``(text, from_locale, to_locale)``.
        baseline_locale: Locale of the baseline texts.
        neutralize: Maps the target locale to the locale requested from the service.

    Returns:
        TranslateSummary: Which keys were changed and how.
    """
    summary = TranslateSummary(resource_name, locale)
    summary.orphans = remove_orphan_keys(baseline, target)
    for key in summary.orphans:
        logger.warning("Removed '%s.%s' from %s: key no longer exists in the baseline.", resource_name, key, locale)

    service_locale = neutralize(locale)

    for key in sorted(baseline):
        baseline_value = baseline[key]
        if not baseline_value:
            continue

        if overrides.is_ignored(baseline_value):
            if _remove_ignored(target, key):
                summary.ignored.append(key)
                logger.warning("Removed ignored value '%s' (%s) from %s.", key, baseline_value, locale)
            continue

        current_value = target.get(key)
        override_value = overrides.override_for(locale, baseline_value)

        if override_value is not None:
            if current_value != override_value:
                logger.debug("Setting '%s.%s' (%s) to config override value.", resource_name, key, baseline_value)
                target[key] = override_value
                summary.overridden.append(key)
            continue

        if current_value and current_value != baseline_value:
            continue

        logger.debug("Trying web service for '%s.%s'", resource_name, key)
        translated_value = translate_fn(baseline_value, baseline_locale, service_locale)
        if not check_placeholder_parity(baseline_value, translated_value):
            logger.warning(
                "Placeholder mismatch for '%s.%s' in %s: '%s' -> '%s'",
                resource_name, key, locale, baseline_value, translated_value
            )
            summary.placeholder_mismatches.append(key)
        target[key] = translated_value
        summary.translated.append(key)

    return summary


def handback_resources(
        resource_name: str,
        baseline: Mapping[str, str],
        target: MutableMapping[str, str],
        locale: str,
        overrides: OverrideConfiguration,
        pending: MutableMapping[str, HandbackRecord],
        pending_by_value: Optional[Mapping[str, HandbackRecord]] = None
) -> HandbackSummary:
    """
    Apply human translations for one resource file.

    ``pending`` maps field names to the handback records still waiting for this
    file. Accepted records and records for ignored values are removed from it.
    A record that contradicts a custom override is rejected and stays pending,
    so it shows up in the residual report. Records for keys missing from the
    baseline are never touched. Keys whose baseline value is ignored are
    removed from the target whether or not a record names them.

    ``pending_by_value`` holds two-column records keyed by English text; they
    apply to every baseline key with that value not covered by ``pending``.
    They are not removed here; the values consumed are returned in
    ``HandbackSummary.consumed_values``.
    """
    summary = HandbackSummary(resource_name, locale)
    summary.orphans = remove_orphan_keys(baseline, target)
    for key in summary.orphans:
        logger.warning("Removed '%s.%s' from %s: key no longer exists in the baseline.", resource_name, key, locale)

    for key in sorted(baseline):
        baseline_value = baseline[key]
        record = pending.get(key)
        by_value = False
        if record is None and pending_by_value:
            record = pending_by_value.get(baseline_value)
            by_value = record is not None

        if overrides.is_ignored(baseline_value):
            removed = _remove_ignored(target, key)
            if removed:
                logger.warning("Removed ignored value '%s' (%s) from %s.", key, baseline_value, locale)
            if removed or record is not None:
                summary.ignored.append(key)
            if record is not None:
                if by_value:
                    summary.consumed_values.add(baseline_value)
                else:
                    del pending[key]
            continue

        if record is None:
            continue

        override_value = overrides.override_for(locale, baseline_value)
        if override_value is not None and override_value != record.translated_value:
            logger.warning(
                "Localized string '%s' (%s) is disallowed by the config. New value is '%s'.",
                key, baseline_value, record.translated_value
            )
            summary.conflicts.append(ReconciliationConflict(
                resource_name=resource_name,
                field_name=key,
                locale=locale,
                baseline_value=baseline_value,
                override_value=override_value,
                handback_value=record.translated_value
            ))
            continue

        if record.english_value and record.english_value != baseline_value:
            logger.debug("Handback for '%s.%s' was made against an older English string '%s'.",
                         resource_name, key, record.english_value)

        target[key] = record.translated_value
        summary.accepted.append(key)
        if by_value:
            summary.consumed_values.add(baseline_value)
        else:
            del pending[key]

    return summary


def handoff_rows(
        resource_name: str,
        baseline: Mapping[str, str],
        target_per_locale: Mapping[str, Mapping[str, str]]
) -> Dict[str, List[HandbackRecord]]:
    """
    Join baseline and target values into handoff records, one list per locale, in sorted key order.

    Nothing is filtered: ignored and overridden keys are exported as they are.
    """
    rows: Dict[str, List[HandbackRecord]] = {}
    for locale, target in target_per_locale.items():
        rows[locale] = [
            HandbackRecord(resource_name, key, baseline[key], target.get(key, '') or '')
            for key in sorted(baseline)
        ]
    return rows
