import os
import tempfile
import textwrap
import unittest

from locsync.properties_parser import (
    format_properties,
    parse_properties,
    read_properties_file,
)


class TestPropertiesParser(unittest.TestCase):

    def test_parse_properties_with_multiline_values(self):
        content = textwrap.dedent("""
            # This is a comment

            key.one=Simple value
            key.two=This is a multi-line value that \\
                     continues on the next line.
            ! Another comment
            key.three : Another simple value
        """)

        translations = parse_properties(content)

        self.assertEqual(translations, {
            'key.one': 'Simple value',
            'key.two': 'This is a multi-line value that continues on the next line.',
            'key.three': 'Another simple value'
        })

    def test_escapes_are_resolved(self):
        content = "greeting=Hello\\nWorld\\t!\nsnow=\\u2603\npath=C\\:\\\\temp\n"

        translations = parse_properties(content)

        self.assertEqual(translations['greeting'], 'Hello\nWorld\t!')
        self.assertEqual(translations['snow'], '\u2603')
        self.assertEqual(translations['path'], 'C:\\temp')

    def test_key_without_value(self):
        self.assertEqual(parse_properties("lonely.key\n"), {'lonely.key': ''})

    def test_format_sorts_keys(self):
        content = format_properties({'b': '2', 'a': '1', 'c': ''})

        self.assertEqual(content, "a=1\nb=2\nc=\n")

    def test_format_escapes_special_characters(self):
        content = format_properties({
            'key with space': ' leading',
            'multi': 'line1\nline2',
            'slash': 'back\\slash',
        })

        self.assertEqual(content, (
            "key\\ with\\ space=\\ leading\n"
            "multi=line1\\nline2\n"
            "slash=back\\\\slash\n"
        ))

    def test_written_file_reads_back_identically(self):
        entries = {
            'german': 'Größe ändern',
            'korean': '예',
            'tricky=key': 'a:b=c # not a comment',
            'trailing': 'ends with backslash \\',
            'multi': 'one\r\ntwo',
            '#hash': '!bang',
        }

        with tempfile.TemporaryDirectory() as temp_dir:
            path = os.path.join(temp_dir, 'Strings.de.properties')
            with open(path, 'w', encoding='utf-8') as f:
                f.write(format_properties(entries))

            self.assertEqual(read_properties_file(path), entries)


if __name__ == '__main__':
    unittest.main()
