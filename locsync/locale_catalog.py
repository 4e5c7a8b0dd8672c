"""Supported locales, neutral-locale derivation and per-locale file naming."""
from dataclasses import dataclass, field
from typing import List, Optional

# First entry is the default (baseline) locale.
DEFAULT_SUPPORTED_LOCALES = [
    "en",
    "en-GB",
    "de",
    "es",
    "es-419",
    "fi",
    "fr",
    "hu",
    "ko",
    "pt-PT",
    "tr",
    "ru",
]


def neutral_of(locale: str) -> str:
    """
    Strip the region part of a locale tag.

    Args:
        locale (str): A locale tag such as "es-419" or "de".

    Returns:
        str: The language-only portion, e.g. "es".
    """
    if '-' not in locale:
        return locale
    return locale.split('-', 1)[0]


@dataclass
class LocaleCatalog:
    """Ordered list of configured locales; the first one is the baseline."""
    supported_locales: List[str] = field(default_factory=lambda: list(DEFAULT_SUPPORTED_LOCALES))

    def __post_init__(self):
        if not self.supported_locales:
            raise ValueError("At least one supported locale is required.")

    @property
    def default_locale(self) -> str:
        return self.supported_locales[0]

    @property
    def baseline_locale(self) -> str:
        return self.default_locale

    def is_supported(self, locale: str) -> bool:
        return locale in self.supported_locales

    def is_baseline(self, locale: str) -> bool:
        """True for the baseline locale and for its neutral form (e.g. "en" when the baseline is "en-US")."""
        return locale in (self.baseline_locale, neutral_of(self.baseline_locale))

    def target_locales(self) -> List[str]:
        """All supported locales except the baseline, in configured order."""
        return [locale for locale in self.supported_locales if not self.is_baseline(locale)]

    def resolve(self, requested: Optional[str]) -> str:
        """
        Map a requested locale onto a supported one.

        Returns ``requested`` verbatim when it is supported, otherwise the first
        supported locale sharing its neutral form, otherwise the default locale.
        """
        if not requested:
            return self.default_locale
        if self.is_supported(requested):
            return requested

        neutral = neutral_of(requested).lower()
        for locale in self.supported_locales:
            if neutral_of(locale).lower() == neutral:
                return locale

        return self.default_locale

    def resource_file_name(self, resource_name: str, locale: str, extension: str) -> str:
        """
        Build the on-disk file name of a resource for a locale.

        The baseline locale uses ``{name}{ext}``; every other locale uses
        ``{name}.{locale}{ext}``.
        """
        if self.is_baseline(locale):
            return f"{resource_name}{extension}"
        return f"{resource_name}.{locale}{extension}"
