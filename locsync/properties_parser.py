import re
from typing import Dict, Mapping

_UNESCAPES = {'t': '\t', 'n': '\n', 'r': '\r', 'f': '\f'}
_VALUE_ESCAPES = {'\\': '\\\\', '\t': '\\t', '\n': '\\n', '\r': '\\r', '\f': '\\f'}
_KEY_SPECIALS = ' =:#!'
# Only these end a line; str.splitlines() would also break on U+2028, U+0085 and friends
_LINE_BREAK_REGEX = re.compile(r'\r\n|\r|\n')


def _has_unescaped_trailing_backslash(s: str) -> bool:
    """Check if a string ends with an odd number of backslashes."""
    if not s.endswith('\\'):
        return False
    # Count trailing backslashes
    count = 0
    i = len(s) - 1
    while i >= 0 and s[i] == '\\':
        count += 1
        i -= 1
    # An odd number of trailing backslashes indicates an unescaped one
    return count % 2 == 1


def unescape_properties_text(text: str) -> str:
    """Resolve ``\\t``, ``\\n``, ``\\uXXXX`` and friends; any other escaped character stands for itself."""
    if '\\' not in text:
        return text
    result = []
    i = 0
    while i < len(text):
        char = text[i]
        if char != '\\' or i == len(text) - 1:
            result.append(char)
            i += 1
            continue
        nxt = text[i + 1]
        if nxt == 'u' and re.fullmatch(r'[0-9a-fA-F]{4}', text[i + 2:i + 6]):
            result.append(chr(int(text[i + 2:i + 6], 16)))
            i += 6
        else:
            result.append(_UNESCAPES.get(nxt, nxt))
            i += 2
    return ''.join(result)


def escape_properties_value(value: str) -> str:
    escaped = ''.join(_VALUE_ESCAPES.get(ch, ch) for ch in value)
    # Leading whitespace would be swallowed by the separator
    if escaped[:1] in (' ', '\t'):
        escaped = '\\' + escaped
    return escaped


def escape_properties_key(key: str) -> str:
    escaped = []
    for ch in key:
        if ch in _KEY_SPECIALS:
            escaped.append('\\' + ch)
        else:
            escaped.append(_VALUE_ESCAPES.get(ch, ch))
    return ''.join(escaped)


def parse_properties(content: str) -> Dict[str, str]:
    """
    Parse the text of a .properties file.

    Comments (``#``/``!``) and blank lines are skipped, continuation lines
    ending in an unescaped backslash are joined, and escapes are resolved in
    both keys and values.

    Args:
        content (str): The file content.

    Returns:
        Dict[str, str]: The key/value pairs, last occurrence of a key wins.
    """
    lines = _LINE_BREAK_REGEX.split(content)
    translations: Dict[str, str] = {}
    i = 0
    while i < len(lines):
        line = lines[i]
        stripped_line = line.lstrip()

        if not stripped_line or stripped_line.startswith(('#', '!')):
            i += 1
            continue

        sep_index = -1
        # Find the first unescaped separator
        for j, char in enumerate(line):
            if char in (':', '='):
                backslash_count = 0
                k = j - 1
                while k >= 0 and line[k] == '\\':
                    backslash_count += 1
                    k -= 1
                if backslash_count % 2 == 0:
                    sep_index = j
                    break

        if sep_index == -1:
            # A key with no value
            translations[unescape_properties_text(line.strip())] = ''
            i += 1
            continue

        key_raw = line[:sep_index].lstrip()
        while key_raw[-1:].isspace() and not _has_unescaped_trailing_backslash(key_raw[:-1]):
            key_raw = key_raw[:-1]
        value_start = sep_index + 1
        while value_start < len(line) and line[value_start] in (' ', '\t', '\f'):
            value_start += 1
        value = line[value_start:]

        # Handle multiline values
        while _has_unescaped_trailing_backslash(value):
            value = value[:-1]
            i += 1
            if i < len(lines):
                value += lines[i].lstrip()
            else:
                break
        i += 1

        translations[unescape_properties_text(key_raw)] = unescape_properties_text(value)
    return translations


def format_properties(translations: Mapping[str, str]) -> str:
    """
    Render key/value pairs as .properties text, one ``key=value`` line per entry in sorted key order.

    Args:
        translations (Mapping[str, str]): The entries to write.

    Returns:
        str: The file content.
    """
    lines = []
    for key in sorted(translations):
        value = translations[key] or ''
        lines.append(f"{escape_properties_key(key)}={escape_properties_value(value)}\n")
    return ''.join(lines)


def read_properties_file(file_path: str) -> Dict[str, str]:
    with open(file_path, 'r', encoding='utf-8') as file:
        return parse_properties(file.read())
