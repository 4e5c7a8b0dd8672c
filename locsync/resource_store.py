"""
Load and persist resource sets (key -> string value) for one resource file in one locale.

Two on-disk formats are supported, chosen by file extension:
``.resx`` (XML string tables) and ``.properties``. Files are always written in
sorted key order and replaced as a whole.
"""
import logging
import os
import tempfile
import xml.etree.ElementTree as ET
from typing import Dict, List, Mapping, Optional
from xml.sax.saxutils import escape, quoteattr

from locsync.errors import ValidationError
from locsync.locale_catalog import LocaleCatalog
from locsync.properties_parser import format_properties, read_properties_file

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = ('.resx', '.properties')

RESX_HEADER = """<?xml version="1.0" encoding="utf-8"?>
<root>
  <resheader name="resmimetype">
    <value>text/microsoft-resx</value>
  </resheader>
  <resheader name="version">
    <value>2.0</value>
  </resheader>
  <resheader name="reader">
    <value>System.Resources.ResXResourceReader, System.Windows.Forms, Version=4.0.0.0, Culture=neutral, PublicKeyToken=b77a5c561934e089</value>
  </resheader>
  <resheader name="writer">
    <value>System.Resources.ResXResourceWriter, System.Windows.Forms, Version=4.0.0.0, Culture=neutral, PublicKeyToken=b77a5c561934e089</value>
  </resheader>
"""

# Carriage returns would be normalized away by any XML parser
_XML_TEXT_ENTITIES = {'\r': '&#13;'}


def read_resx_file(file_path: str) -> Dict[str, str]:
    """
    Read the string entries of a .resx file.

    Entries carrying a ``type`` or ``mimetype`` attribute are not plain strings and are skipped.
    """
    try:
        tree = ET.parse(file_path)
    except ET.ParseError as parse_exc:
        raise ValidationError(f"Resource file '{file_path}' is not valid XML: {parse_exc}") from parse_exc

    resources: Dict[str, str] = {}
    for data in tree.getroot().iter('data'):
        name = data.get('name')
        if name is None:
            continue
        if data.get('type') or data.get('mimetype'):
            logger.warning("Skipping non-string resource '%s' in '%s'.", name, file_path)
            continue
        value_element = data.find('value')
        value = value_element.text if value_element is not None else None
        resources[name] = value or ''
    return resources


def format_resx(resources: Mapping[str, str]) -> str:
    parts = [RESX_HEADER]
    for key in sorted(resources):
        value = resources[key] or ''
        parts.append(
            f'  <data name={quoteattr(key)} xml:space="preserve">\n'
            f'    <value>{escape(value, _XML_TEXT_ENTITIES)}</value>\n'
            f'  </data>\n'
        )
    parts.append('</root>\n')
    return ''.join(parts)


def load_resources(file_path: str) -> Dict[str, str]:
    """
    Load a resource file.

    Args:
        file_path (str): Path to a .resx or .properties file.

    Returns:
        Dict[str, str]: The entries, or an empty mapping when the file does not exist.
    """
    _check_extension(file_path)
    if not os.path.exists(file_path):
        return {}
    if file_path.endswith('.resx'):
        return read_resx_file(file_path)
    return read_properties_file(file_path)


def save_resources(file_path: str, resources: Mapping[str, str]) -> None:
    """
    Replace a resource file with ``resources``, written in sorted key order.

    The content is written to a temporary file in the same directory first and
    then moved over the target, so a failure never leaves a half-written file.
    """
    _check_extension(file_path)
    if file_path.endswith('.resx'):
        content = format_resx(resources)
    else:
        content = format_properties(resources)

    directory = os.path.dirname(os.path.abspath(file_path))
    os.makedirs(directory, exist_ok=True)
    with tempfile.NamedTemporaryFile(mode='w', delete=False, dir=directory, suffix='.tmp',
                                     encoding='utf-8', newline='\n') as temp_f:
        temp_f.write(content)
        temp_path = temp_f.name
    try:
        os.replace(temp_path, file_path)
    except OSError:
        os.remove(temp_path)
        raise


def _check_extension(file_path: str) -> None:
    if not file_path.endswith(SUPPORTED_EXTENSIONS):
        raise ValidationError(
            f"Path '{file_path}' doesn't resolve to a supported resource file ({', '.join(SUPPORTED_EXTENSIONS)})."
        )


class ResourceStore:
    """Resource files of one directory, named ``{name}{ext}`` for the baseline and ``{name}.{locale}{ext}`` otherwise."""

    def __init__(self, resources_dir: str, catalog: LocaleCatalog, extension: str = '.resx', dry_run: bool = False):
        if extension not in SUPPORTED_EXTENSIONS:
            raise ValidationError(f"Unsupported resource extension '{extension}'.")
        self.resources_dir = resources_dir
        self.catalog = catalog
        self.extension = extension
        self.dry_run = dry_run

    def validate(self) -> None:
        if not os.path.isdir(self.resources_dir):
            raise ValidationError(f"Couldn't find translation dir '{self.resources_dir}'.")

    def discover_resource_names(self, only: Optional[List[str]] = None) -> List[str]:
        """
        List the resource names that have a baseline file, sorted.

        Args:
            only: Optional allow-list of resource names; an unknown name is an error.

        Returns:
            List[str]: Resource names (file name without extension).
        """
        self.validate()
        names = sorted(
            file_name[:-len(self.extension)]
            for file_name in os.listdir(self.resources_dir)
            if file_name.endswith(self.extension)
            and '.' not in file_name[:-len(self.extension)]
            and os.path.isfile(os.path.join(self.resources_dir, file_name))
        )
        if only:
            unknown = sorted(set(only) - set(names))
            if unknown:
                raise ValidationError(f"Unknown resource file(s): {', '.join(unknown)}.")
            names = [name for name in names if name in only]
        return names

    def path_for(self, resource_name: str, locale: str) -> str:
        file_name = self.catalog.resource_file_name(resource_name, locale, self.extension)
        return os.path.join(self.resources_dir, file_name)

    def load(self, resource_name: str, locale: str) -> Dict[str, str]:
        return load_resources(self.path_for(resource_name, locale))

    def save(self, resource_name: str, locale: str, resources: Mapping[str, str]) -> str:
        path = self.path_for(resource_name, locale)
        if self.dry_run:
            logger.info("[Dry Run] Would write %d entries to '%s'.", len(resources), path)
        else:
            save_resources(path, resources)
            logger.info("Saved %d entries to '%s'.", len(resources), path)
        return path
