"""Checks shared by the reconciliation passes and the handback import."""
import re
from collections import Counter
from typing import List, Mapping, Set, Tuple

# Format items such as {0}, {1:N2} or {name}
PLACEHOLDER_REGEX = re.compile(r'\{([^{}]+)\}')

# UTF-8 text that went through a latin-1/cp1252 decode: 'Ã¼' for 'ü'
MOJIBAKE_REGEX = re.compile(r'Ã[\x80-\xff]')
REPLACEMENT_CHARACTER = '\uFFFD'


def check_key_coverage(base_keys: Set[str], target_keys: Set[str]) -> Tuple[Set[str], Set[str]]:
    """
    Compare the keys of a locale's resource set with the baseline keys.

    Returns:
        A tuple (missing, extra): baseline keys absent from the target, and
        target keys the baseline no longer has.
    """
    return base_keys - target_keys, target_keys - base_keys


def check_placeholder_parity(base_string: str, target_string: str) -> bool:
    """
    True when both strings carry the same format items, counted with multiplicity.

    The order may differ, translations often move them around.
    """
    return Counter(PLACEHOLDER_REGEX.findall(base_string)) == Counter(PLACEHOLDER_REGEX.findall(target_string))


def placeholder_mismatches(baseline: Mapping[str, str], target: Mapping[str, str]) -> List[str]:
    """Keys, sorted, whose translated value lost or gained a format item."""
    return sorted(
        key for key, value in target.items()
        if key in baseline and value and not check_placeholder_parity(baseline[key], value)
    )


def check_encoding_and_mojibake(file_path: str) -> List[str]:
    """
    Look for encoding damage in a text file such as a handback CSV.

    Returns:
        List[str]: One message per problem found; empty when the file looks clean.
    """
    try:
        with open(file_path, 'r', encoding='utf-8-sig') as f:
            content = f.read()
    except UnicodeDecodeError:
        return [f"File '{file_path}' is not a valid UTF-8 file."]
    except OSError as read_exc:
        return [f"Could not read file '{file_path}': {read_exc}"]

    problems = []
    if MOJIBAKE_REGEX.search(content):
        problems.append(f"File '{file_path}' looks double-encoded (sequences like 'Ã¼' instead of 'ü').")
    if REPLACEMENT_CHARACTER in content:
        problems.append(f"File '{file_path}' contains U+FFFD replacement characters; some text was lost "
                        f"in an earlier encoding step.")
    return problems
