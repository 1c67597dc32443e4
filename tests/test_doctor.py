"""Tests for the ``tfplan-wrap doctor`` command (cli/doctor.py).

terraform itself is replaced by a stub runner, and executable
resolution is patched, so no terraform binary is needed.

Coverage:
* Executable and ``version -json`` rows.
* Working directory and configuration rows.
* Temp directory row.
* Exit codes and summary for failures and warnings.
* CLI routing of ``--terraform`` and ``--chdir``.
"""

from __future__ import annotations

import tempfile
from collections.abc import Sequence
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from tfplan_wrap.cli import exit_codes
from tfplan_wrap.cli.doctor import (
    FAIL,
    OK,
    WARN,
    _temp_dir_check,
    _terraform_checks,
    _working_dir_checks,
    collect_checks,
    run_doctor,
)
from tfplan_wrap.core.models import RunResult, TerraformSettings
from tfplan_wrap.exceptions import TerraformExecutionError

VERSION_JSON = '{"terraform_version": "1.6.2", "platform": "linux_amd64"}'


class _StubRunner:
    def __init__(self, stdout: str = VERSION_JSON, error: Exception | None = None) -> None:
        self.stdout = stdout
        self.error = error

    def run(self, args: Sequence[str], *, cancel: object = None) -> RunResult:
        if self.error is not None:
            raise self.error
        return RunResult(args=tuple(args), stdout=self.stdout, stderr="")


def _initialized_stack(directory: Path) -> Path:
    (directory / "main.tf").write_text('resource "null_resource" "foo" {}\n')
    (directory / ".terraform").mkdir()
    return directory


# ---------------------------------------------------------------------------
# terraform rows
# ---------------------------------------------------------------------------

class TestTerraformChecks:
    @patch("tfplan_wrap.cli.doctor.resolve_terraform", return_value=None)
    def test_missing_binary_fails(self, _mock_resolve: MagicMock) -> None:
        (row,) = _terraform_checks(TerraformSettings(exec_path="tofu"), _StubRunner())
        assert row.status == FAIL
        assert "tofu" in row.value

    @patch("tfplan_wrap.cli.doctor.resolve_terraform", return_value=Path("/usr/bin/terraform"))
    def test_version_reported(self, _mock_resolve: MagicMock) -> None:
        binary, version = _terraform_checks(TerraformSettings(), _StubRunner())

        assert (binary.value, binary.status) == (str(Path("/usr/bin/terraform")), OK)
        assert (version.value, version.status) == ("1.6.2 (linux_amd64)", OK)

    @patch("tfplan_wrap.cli.doctor.resolve_terraform", return_value=Path("/usr/bin/terraform"))
    def test_outdated_version_warns(self, _mock_resolve: MagicMock) -> None:
        runner = _StubRunner('{"terraform_version": "1.0.0", "terraform_outdated": true}')
        _binary, version = _terraform_checks(TerraformSettings(), runner)

        assert version.status == WARN
        assert version.value.startswith("1.0.0")

    @patch("tfplan_wrap.cli.doctor.resolve_terraform", return_value=Path("/usr/bin/terraform"))
    def test_version_failure_fails(self, _mock_resolve: MagicMock) -> None:
        error = TerraformExecutionError("terraform version exited with status 1:\nboom")
        _binary, version = _terraform_checks(TerraformSettings(), _StubRunner(error=error))

        assert version.status == FAIL
        assert version.value == "terraform version exited with status 1:"

    @patch("tfplan_wrap.cli.doctor.SubprocessCommandRunner")
    @patch("tfplan_wrap.cli.doctor.resolve_terraform", return_value=Path("/opt/tf/terraform"))
    def test_default_runner_uses_resolved_binary(
        self, _mock_resolve: MagicMock, mock_runner_cls: MagicMock, tmp_path: Path,
    ) -> None:
        mock_runner_cls.return_value.run.return_value = RunResult(
            args=("version", "-json"), stdout=VERSION_JSON, stderr="",
        )

        _terraform_checks(TerraformSettings(working_dir=tmp_path), None)

        (settings,) = mock_runner_cls.call_args.args
        assert settings.exec_path == str(Path("/opt/tf/terraform"))
        assert settings.working_dir is None


# ---------------------------------------------------------------------------
# Working directory rows
# ---------------------------------------------------------------------------

class TestWorkingDirChecks:
    def test_missing_directory_fails(self, tmp_path: Path) -> None:
        (row,) = _working_dir_checks(TerraformSettings(working_dir=tmp_path / "nope"))
        assert row.status == FAIL
        assert "does not exist" in row.value

    def test_file_is_not_a_directory(self, tmp_path: Path) -> None:
        target = tmp_path / "main.tf"
        target.write_text("")
        (row,) = _working_dir_checks(TerraformSettings(working_dir=target))
        assert row.status == FAIL
        assert "not a directory" in row.value

    @patch("tfplan_wrap.cli.doctor.os.access", return_value=False)
    def test_read_only_directory_fails(self, _mock_access: MagicMock, tmp_path: Path) -> None:
        (row,) = _working_dir_checks(TerraformSettings(working_dir=tmp_path))
        assert row.status == FAIL
        assert "not writable" in row.value

    def test_no_configuration_warns(self, tmp_path: Path) -> None:
        directory, config = _working_dir_checks(TerraformSettings(working_dir=tmp_path))
        assert directory.status == OK
        assert (config.status, config.value) == (WARN, "no .tf files")

    def test_uninitialized_configuration_warns(self, tmp_path: Path) -> None:
        (tmp_path / "main.tf.json").write_text("{}")
        _directory, config = _working_dir_checks(TerraformSettings(working_dir=tmp_path))
        assert config.status == WARN
        assert "terraform init" in config.value

    def test_initialized_configuration(self, tmp_path: Path) -> None:
        _initialized_stack(tmp_path)
        _directory, config = _working_dir_checks(TerraformSettings(working_dir=tmp_path))
        assert (config.status, config.value) == (OK, "1 file(s), initialized")

    def test_defaults_to_current_directory(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.chdir(tmp_path)
        directory, _config = _working_dir_checks(TerraformSettings())
        assert Path(directory.value).resolve() == tmp_path.resolve()


# ---------------------------------------------------------------------------
# Temp directory row
# ---------------------------------------------------------------------------

class TestTempDirCheck:
    def test_writable_temp_dir(self, temp_dir: Path) -> None:
        row = _temp_dir_check()
        assert (row.value, row.status) == (str(temp_dir), OK)
        assert list(temp_dir.iterdir()) == []

    def test_unwritable_temp_dir_fails(
        self, temp_dir: Path, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        def _refuse(*args: object, **kwargs: object) -> tuple[int, str]:
            raise PermissionError("read-only file system")

        monkeypatch.setattr(tempfile, "mkstemp", _refuse)
        row = _temp_dir_check()
        assert row.status == FAIL
        assert "not writable" in row.value


# ---------------------------------------------------------------------------
# run_doctor
# ---------------------------------------------------------------------------

@patch("tfplan_wrap.cli.doctor.resolve_terraform", return_value=Path("/usr/bin/terraform"))
class TestRunDoctor:
    def test_all_checks_pass(
        self,
        _mock_resolve: MagicMock,
        tmp_path: Path,
        temp_dir: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        settings = TerraformSettings(working_dir=_initialized_stack(tmp_path))

        assert run_doctor(settings, runner=_StubRunner()) == exit_codes.SUCCESS
        assert "All checks passed." in capsys.readouterr().err

    def test_warnings_do_not_fail(
        self,
        _mock_resolve: MagicMock,
        tmp_path: Path,
        temp_dir: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        settings = TerraformSettings(working_dir=tmp_path)

        assert run_doctor(settings, runner=_StubRunner()) == exit_codes.SUCCESS
        assert "1 warning(s)" in capsys.readouterr().err

    def test_failure_returns_general_error(
        self,
        _mock_resolve: MagicMock,
        tmp_path: Path,
        temp_dir: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        settings = TerraformSettings(working_dir=tmp_path / "missing")

        assert run_doctor(settings, runner=_StubRunner()) == exit_codes.GENERAL_ERROR
        assert "1 check(s) failed." in capsys.readouterr().err

    @patch.dict(
        "sys.modules",
        {"rich": None, "rich.table": None, "rich.console": None, "rich.markup": None},
    )
    def test_plain_output_without_rich(
        self,
        _mock_resolve: MagicMock,
        tmp_path: Path,
        temp_dir: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        settings = TerraformSettings(working_dir=tmp_path / "missing")

        code = run_doctor(settings, runner=_StubRunner())
        err = capsys.readouterr().err

        assert code == exit_codes.GENERAL_ERROR
        assert "tfplan-wrap doctor" in err
        assert "FAIL" in err
        assert "1.6.2 (linux_amd64)" in err
        assert "[bold" not in err

    def test_rows_in_display_order(
        self, _mock_resolve: MagicMock, tmp_path: Path, temp_dir: Path,
    ) -> None:
        checks = collect_checks(TerraformSettings(working_dir=tmp_path), runner=_StubRunner())
        assert [check.label for check in checks] == [
            "tfplan-wrap",
            "Python",
            "terraform",
            "version",
            "working dir",
            "configuration",
            "temp dir",
        ]


# ---------------------------------------------------------------------------
# CLI routing
# ---------------------------------------------------------------------------

class TestDoctorRouting:
    @patch("tfplan_wrap.cli.doctor.run_doctor", return_value=exit_codes.SUCCESS)
    def test_doctor_dispatches(self, mock_run: MagicMock, clean_env: None) -> None:
        from tfplan_wrap.cli.app import main

        assert main(["doctor"]) == exit_codes.SUCCESS
        (settings,) = mock_run.call_args.args
        assert settings.exec_path == "terraform"
        assert settings.working_dir is None

    @patch("tfplan_wrap.cli.doctor.run_doctor", return_value=exit_codes.SUCCESS)
    def test_doctor_flags(self, mock_run: MagicMock, clean_env: None, tmp_path: Path) -> None:
        from tfplan_wrap.cli.app import main

        main(["doctor", "--terraform", "/opt/terraform", "--chdir", str(tmp_path)])
        (settings,) = mock_run.call_args.args
        assert settings.exec_path == "/opt/terraform"
        assert settings.working_dir == tmp_path

    @patch("tfplan_wrap.cli.doctor.run_doctor", return_value=exit_codes.GENERAL_ERROR)
    def test_doctor_failure_propagates(self, mock_run: MagicMock, clean_env: None) -> None:
        from tfplan_wrap.cli.app import main

        assert main(["doctor"]) == exit_codes.GENERAL_ERROR
