"""Command-line runs: argument handling and exit codes."""
import os
from unittest.mock import MagicMock, patch

import pytest
import yaml

from locsync.cli import EXIT_FAILURE, EXIT_OK, EXIT_RESIDUALS, build_parser, main
from locsync.errors import ProviderError
from locsync.records import HandbackRecord, write_records

TEST_LOCALES = ["en", "es", "es-419", "fr"]


@pytest.fixture
def project(in_tmp_cwd, resources_dir, write_resources, override_config_file):
    """A working directory holding config.yaml, config.json and an enlistment with one resource file."""
    config = {
        "resources_subdir": "resources",
        "resource_extension": ".resx",
        "supported_locales": TEST_LOCALES,
        "override_config_path": "config.json",
        "output_dir": "out",
        "logging": {"log_level": "INFO", "log_to_console": False},
    }
    (in_tmp_cwd / "config.yaml").write_text(yaml.dump(config), encoding="utf-8")
    override_config_file({"ignore": ["DDTech"], "custom": {"fr": {"Yes": "Oui"}}})
    write_resources("Strings", "en", {"A": "Yes", "B": "Save", "C": "DDTech"})
    return in_tmp_cwd


def _run(*args):
    return main(["-c", "config.yaml", "-d", "enlistment", *args])


def _provider(translate_fn):
    provider = MagicMock()
    provider.translate.side_effect = translate_fn
    return provider


class TestArguments:

    def test_mode_is_case_insensitive_and_defaults_to_translate(self):
        assert build_parser().parse_args(["-d", "x"]).mode == "translate"
        assert build_parser().parse_args(["-d", "x", "-m", "HandBack"]).mode == "handback"

    def test_unknown_mode_is_a_usage_error(self):
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args(["-d", "x", "-m", "export"])
        assert exc_info.value.code == 2

    def test_enlistment_dir_is_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestTranslateCommand:

    def test_translate_run_succeeds(self, project, store, stub_translator):
        with patch("locsync.cli.build_provider", return_value=_provider(stub_translator)):
            exit_code = _run("-l", "fr,es")

        assert exit_code == EXIT_OK
        assert store.load("Strings", "fr") == {"A": "Oui", "B": "fr:Save"}
        assert store.load("Strings", "es") == {"A": "es:Yes", "B": "es:Save"}
        assert not os.path.exists(store.path_for("Strings", "es-419"))

    def test_provider_failure_exits_with_failure(self, project):
        def failing(text, from_locale, to_locale):
            raise ProviderError("Translation request failed", status_code=401, body="denied")

        with patch("locsync.cli.build_provider", return_value=_provider(failing)):
            assert _run("-l", "es") == EXIT_FAILURE

    def test_missing_credentials_exit_with_failure(self, project, monkeypatch):
        monkeypatch.delenv("TRANSLATOR_API_KEY", raising=False)

        assert _run("-l", "es") == EXIT_FAILURE

    def test_invalid_override_config_exits_with_failure(self, project, override_config_file, stub_translator):
        override_config_file({"ignore": "DDTech"})

        with patch("locsync.cli.build_provider", return_value=_provider(stub_translator)):
            assert _run("-l", "es") == EXIT_FAILURE

    def test_dry_run_writes_nothing(self, project, store, stub_translator):
        with patch("locsync.cli.build_provider", return_value=_provider(stub_translator)):
            assert _run("-l", "es", "--dry-run") == EXIT_OK

        assert not os.path.exists(store.path_for("Strings", "es"))


class TestValidationFailures:

    def test_missing_enlistment_dir(self, project):
        assert main(["-c", "config.yaml", "-d", "nowhere", "-m", "handoff"]) == EXIT_FAILURE

    def test_unknown_resource_file(self, project):
        assert _run("-m", "handoff", "-r", "Nope") == EXIT_FAILURE

    def test_invalid_config_file(self, project):
        (project / "config.yaml").write_text("supported_locales: [en, fr", encoding="utf-8")

        assert _run("-m", "handoff") == EXIT_FAILURE

    def test_handback_requires_input_file(self, project):
        assert _run("-m", "handback", "-l", "fr") == EXIT_FAILURE

    def test_handback_requires_exactly_one_locale(self, project):
        write_records(str(project / "handback.csv"), [])

        assert _run("-m", "handback", "-i", "handback.csv", "-l", "fr", "es") == EXIT_FAILURE

    def test_handback_rejects_non_csv_input(self, project):
        (project / "handback.txt").write_text("", encoding="utf-8")

        assert _run("-m", "handback", "-i", "handback.txt", "-l", "fr") == EXIT_FAILURE


class TestHandoffAndHandbackCommands:

    def test_handoff_writes_csv_per_locale(self, project):
        assert _run("-m", "handoff", "-l", "es", "fr") == EXIT_OK

        assert os.path.isfile(project / "out" / "StringResources-es-UTF8.csv")
        assert os.path.isfile(project / "out" / "StringResources-fr-UTF8.csv")
        assert not os.path.exists(project / "out" / "StringResources-es-419-UTF8.csv")

    def test_handoff_output_dir_flag(self, project):
        assert _run("-m", "handoff", "-l", "es", "-o", "exports") == EXIT_OK

        assert os.path.isfile(project / "exports" / "StringResources-es-UTF8.csv")

    def test_clean_handback_exits_ok(self, project, store):
        write_records(str(project / "handback.csv"), [HandbackRecord("Strings", "B", "Save", "Guardar")])

        assert _run("-m", "handback", "-i", "handback.csv", "-l", "es") == EXIT_OK
        assert store.load("Strings", "es") == {"B": "Guardar"}

    def test_unmatched_records_exit_with_residual_status(self, project, store):
        write_records(str(project / "handback.csv"), [
            HandbackRecord("Strings", "B", "Save", "Enregistrer"),
            HandbackRecord("Strings", "Gone", "Old", "Ancien"),
        ])

        assert _run("-m", "handback", "-i", "handback.csv", "-l", "fr") == EXIT_RESIDUALS
        assert store.load("Strings", "fr") == {"B": "Enregistrer"}
        reports = [name for name in os.listdir(project / "out") if name.startswith("FailedTranslations-")]
        assert len(reports) == 1
        assert reports[0].endswith("-fr-UTF8.csv")
