import csv
import json
import logging
import os

import pytest

from locsync.locale_catalog import LocaleCatalog
from locsync.overrides import OverrideConfiguration
from locsync.resource_store import ResourceStore, save_resources

TEST_LOCALES = ["en", "es", "es-419", "fr"]


class StubTranslator:
    """Records every call and answers from a fixed table, falling back to '<to_locale>:<text>'."""

    def __init__(self, answers=None):
        self.answers = answers or {}
        self.calls = []

    def __call__(self, text, from_locale, to_locale):
        self.calls.append((text, from_locale, to_locale))
        return self.answers.get((text, to_locale), f"{to_locale}:{text}")


@pytest.fixture(autouse=True)
def quiet_locsync_logger():
    """Keep handlers installed by other tests from leaking into this one."""
    logger = logging.getLogger("locsync")
    saved_handlers, saved_propagate, saved_level = list(logger.handlers), logger.propagate, logger.level
    logger.handlers.clear()
    logger.propagate = True
    yield
    logger.handlers[:] = saved_handlers
    logger.propagate = saved_propagate
    logger.setLevel(saved_level)


@pytest.fixture
def catalog():
    return LocaleCatalog(list(TEST_LOCALES))


@pytest.fixture
def stub_translator():
    return StubTranslator()


@pytest.fixture
def overrides():
    return OverrideConfiguration(
        ignore_set=frozenset({"DDTech"}),
        custom_overrides={"fr": {"Yes": "Oui"}, "es": {"OK": "Vale"}}
    )


@pytest.fixture
def resources_dir(tmp_path):
    path = tmp_path / "enlistment" / "resources"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def store(resources_dir, catalog):
    return ResourceStore(str(resources_dir), catalog, extension='.resx')


@pytest.fixture
def write_resources(store):
    """Write a resource set for (resource name, locale) through the store's naming scheme."""
    def _write(resource_name, locale, entries):
        path = store.path_for(resource_name, locale)
        save_resources(path, entries)
        return path
    return _write


@pytest.fixture
def override_config_file(tmp_path):
    def _write(data):
        path = tmp_path / "config.json"
        path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
        return str(path)
    return _write


def read_csv_rows(path):
    with open(path, 'r', encoding='utf-8-sig', newline='') as f:
        return list(csv.reader(f))


@pytest.fixture
def csv_rows():
    return read_csv_rows


@pytest.fixture
def in_tmp_cwd(tmp_path):
    previous = os.getcwd()
    os.chdir(tmp_path)
    try:
        yield tmp_path
    finally:
        os.chdir(previous)
