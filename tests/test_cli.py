import pytest
from unittest.mock import patch

from winget_updater import (
    DEFAULT_EXCLUDED_APPS,
    build_exclusions,
    main,
    parse_arguments,
    read_exclude_file,
)
from conftest import SAMPLE_LISTING, completed


QUIET = ["--no-pause", "--no-log-file", "--no-rich-console", "--log-level", "ERROR"]


def test_defaults():
    """Test that no arguments reproduce the fixed behavior"""
    args = parse_arguments([])
    assert args.locale == "en"
    assert args.winget_executable == "winget"
    assert args.check_only is False
    assert args.pause is True
    assert args.listing_file is None
    assert args.post_update_command is None
    assert build_exclusions(args) == list(DEFAULT_EXCLUDED_APPS)


def test_post_update_command_split():
    args = parse_arguments(["--post-update-command", "rustup update stable"])
    assert args.post_update_command == ["rustup", "update", "stable"]


def test_empty_post_update_command_rejected():
    with pytest.raises(SystemExit) as exc_info:
        parse_arguments(["--post-update-command", "   "])
    assert exc_info.value.code == 2


def test_missing_exclude_file_rejected(tmp_path):
    with pytest.raises(SystemExit) as exc_info:
        parse_arguments(["--exclude-file", str(tmp_path / "missing.txt")])
    assert exc_info.value.code == 2


def test_unknown_locale_rejected():
    with pytest.raises(SystemExit):
        parse_arguments(["--locale", "xx"])


def test_read_exclude_file(tmp_path):
    exclude_file = tmp_path / "exclude.txt"
    exclude_file.write_text(
        "# apps I update by hand\nSteam\n\nMicrosoft Teams\nSteam\n", encoding="utf-8"
    )
    assert read_exclude_file(exclude_file) == ["Steam", "Microsoft Teams"]


def test_build_exclusions_combines_sources(tmp_path):
    exclude_file = tmp_path / "exclude.txt"
    exclude_file.write_text("Microsoft Teams\nDiscord\n", encoding="utf-8")
    args = parse_arguments(
        ["--no-default-excludes", "--exclude", "Steam", "--exclude-file", str(exclude_file)]
    )
    assert build_exclusions(args) == ["Steam", "Microsoft Teams", "Discord"]


@patch("winget_updater.subprocess.run")
def test_main_completes_with_exit_code_zero(mock_run, capsys):
    mock_run.side_effect = [completed(stdout=SAMPLE_LISTING), completed(returncode=1), completed()]

    with pytest.raises(SystemExit) as exc_info:
        main(QUIET)

    assert exc_info.value.code == 0
    out = capsys.readouterr().out
    assert "[ERROR] Failed to update Visual Studio Code" in out
    assert "[SUCCESS] Git updated successfully!" in out
    assert "[SKIPPED] Discord Canary - Excluded from update" in out
    assert "Applications updated: 1" in out
    assert "Applications skipped: 1" in out


@patch("winget_updater.subprocess.run")
def test_main_listing_failure(mock_run, capsys):
    mock_run.side_effect = FileNotFoundError("winget")

    with pytest.raises(SystemExit) as exc_info:
        main(QUIET)

    assert exc_info.value.code == 1
    assert mock_run.call_count == 1
    out = capsys.readouterr().out
    assert "[ERROR] Could not retrieve the list of upgrades" in out
    assert "[UPDATING]" not in out


@patch("winget_updater.subprocess.run")
def test_main_check_only(mock_run, capsys):
    mock_run.return_value = completed(stdout=SAMPLE_LISTING)

    with pytest.raises(SystemExit) as exc_info:
        main(QUIET + ["--check-only"])

    assert exc_info.value.code == 0
    assert mock_run.call_count == 1
    assert "Check-only mode" in capsys.readouterr().out


@patch("winget_updater.subprocess.run")
def test_main_waits_for_enter(mock_run, monkeypatch):
    mock_run.return_value = completed(stdout="")
    prompts = []
    monkeypatch.setattr("builtins.input", lambda prompt="": prompts.append(prompt) or "")

    with pytest.raises(SystemExit):
        main(["--no-log-file", "--no-rich-console", "--log-level", "ERROR"])

    assert len(prompts) == 1
