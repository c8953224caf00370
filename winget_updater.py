#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Winget Package Updater
============================

This module provides a class `WingetUpdater` that asks winget for the list of
pending upgrades, parses the human-formatted table it prints into
`PackageRecord` objects and updates every package that is not excluded,
reporting the outcome of each step and a final summary.
"""

import sys

REQUIRED_PYTHON_VERSION = (3, 11)

current_version = sys.version_info

if current_version < REQUIRED_PYTHON_VERSION:
    print(
        f"Error: This script requires Python version {REQUIRED_PYTHON_VERSION[0]}.{REQUIRED_PYTHON_VERSION[1]} or later."
    )
    print(
        f"You are using Python {current_version.major}.{current_version.minor}.{current_version.micro}."
    )
    sys.exit(1)

import argparse
import contextlib
import enum
import os
import platform
import re
import shlex
import subprocess
import time

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import (
    Dict,
    Final,
    Iterable,
    Iterator,
    List,
    Optional,
    Self,
    Sequence,
    Tuple,
)

try:
    from loguru import logger
    from rich.console import Console
    from rich.logging import RichHandler
    from rich.markup import escape
    from rich.table import Table
    from rich.theme import Theme
except ImportError as e:
    print(
        f"Error: Missing required libraries ({e.name}). Please install them: pip install loguru rich"
    )
    sys.exit(1)

# --- Constants ---
DEFAULT_WINGET_EXECUTABLE: Final[str] = "winget"
DEFAULT_EXCLUDED_APPS: Final[Tuple[str, ...]] = ("BlueStacks", "AutoIt", "Discord")
DEFAULT_LOG_FILE: Final[Path] = Path("winget_updater.log")
DEFAULT_LOCALE: Final[str] = "en"

LIST_UPGRADES_ARGS: Final[Tuple[str, ...]] = ("upgrade", "--accept-source-agreements")
UPDATE_ARGS: Final[Tuple[str, ...]] = ("update", "--silent", "--exact", "--id")
AGREEMENT_ARGS: Final[Tuple[str, ...]] = (
    "--accept-package-agreements",
    "--accept-source-agreements",
)

# Title line and the column-header/separator line of the upgrade table.
HEADER_LINE_COUNT: Final[int] = 2
# name (at least one token) + id + current version + available version + source
MIN_FIELD_COUNT: Final[int] = 5
TRAILING_FIELD_COUNT: Final[int] = 4

UTF8_CODE_PAGE: Final[int] = 65001
BANNER_WIDTH: Final[int] = 39

_FIELD_PATTERN: Final[re.Pattern[str]] = re.compile(r"[^\s]+")

# --- Custom Exceptions ---


class WingetUpdaterError(Exception):
    """Base exception for the WingetUpdater class."""

    pass


class WingetCommandError(WingetUpdaterError):
    """Raised when a winget command cannot be launched or fails unexpectedly."""

    def __init__(self, command: str, stderr: str, return_code: int):
        self.command = command
        self.stderr = stderr
        self.return_code = return_code
        super().__init__(
            f"Winget command '{command}' failed with code {return_code}:\n{stderr}"
        )


class PackageUpdateError(WingetUpdaterError):
    """Raised when a specific package fails to update."""

    def __init__(self, package_id: str, reason: str):
        self.package_id = package_id
        self.reason = reason
        super().__init__(f"Failed to update package '{package_id}': {reason}")


class PostUpdateCommandError(WingetUpdaterError):
    """Raised when the post-update command fails."""

    def __init__(self, command: str, reason: str):
        self.command = command
        self.reason = reason
        super().__init__(f"Post-update command '{command}' failed: {reason}")


# --- Messages ---


@dataclass(frozen=True, kw_only=True)
class Messages:
    """User-visible phrases for one locale."""

    checking: str
    listing_saved: str
    processing: str
    excluded: str
    updated: str
    update_failed: str
    pending: str
    no_updates: str
    check_only: str
    post_update: str
    post_update_success: str
    post_update_failed: str
    cleaning: str
    file_removed: str
    file_not_removed: str
    codepage_warning: str
    listing_failed: str
    summary_title: str
    updated_label: str
    skipped_label: str
    failed_label: str
    duration_label: str
    completed: str
    press_enter: str
    trailer_pattern: re.Pattern[str]


LOCALES: Final[Dict[str, Messages]] = {
    "en": Messages(
        checking="Checking for available updates...",
        listing_saved="List of upgradable apps saved to: {path}",
        processing="Processing updates...",
        excluded="{name} - Excluded from update",
        updated="{name} updated successfully!",
        update_failed="Failed to update {name}",
        pending="{name} ({id}): {current} -> {available}",
        no_updates="All packages are up to date.",
        check_only="Check-only mode, no updates were installed.",
        post_update="Running post-update command: {command}",
        post_update_success="Post-update command finished successfully!",
        post_update_failed="Post-update command failed: {reason}",
        cleaning="Removing temporary file...",
        file_removed="File removed successfully!",
        file_not_removed="Could not remove file {path}",
        codepage_warning="Console is not set to UTF-8 (CP {codepage})",
        listing_failed="Could not retrieve the list of upgrades: {reason}",
        summary_title="UPDATE SUMMARY:",
        updated_label="Applications updated:",
        skipped_label="Applications skipped:",
        failed_label="Applications failed:",
        duration_label="Duration:",
        completed="Update process completed!",
        press_enter="Press Enter to exit...",
        trailer_pattern=re.compile(r"^\d+\s+upgrades?\s+available\.?$", re.IGNORECASE),
    ),
    "de": Messages(
        checking="Suche nach verfügbaren Aktualisierungen...",
        listing_saved="Liste der aktualisierbaren Anwendungen gespeichert unter: {path}",
        processing="Aktualisierungen werden verarbeitet...",
        excluded="{name} - Von der Aktualisierung ausgeschlossen",
        updated="{name} wurde erfolgreich aktualisiert!",
        update_failed="Aktualisierung von {name} fehlgeschlagen",
        pending="{name} ({id}): {current} -> {available}",
        no_updates="Alle Pakete sind auf dem neuesten Stand.",
        check_only="Nur-Prüfmodus, es wurden keine Aktualisierungen installiert.",
        post_update="Nachfolgender Befehl wird ausgeführt: {command}",
        post_update_success="Nachfolgender Befehl erfolgreich abgeschlossen!",
        post_update_failed="Nachfolgender Befehl fehlgeschlagen: {reason}",
        cleaning="Temporäre Datei wird entfernt...",
        file_removed="Datei erfolgreich entfernt!",
        file_not_removed="Datei {path} konnte nicht entfernt werden",
        codepage_warning="Die Konsole ist nicht auf UTF-8 eingestellt (CP {codepage})",
        listing_failed="Liste der Aktualisierungen konnte nicht abgerufen werden: {reason}",
        summary_title="ZUSAMMENFASSUNG:",
        updated_label="Aktualisierte Anwendungen:",
        skipped_label="Übersprungene Anwendungen:",
        failed_label="Fehlgeschlagene Anwendungen:",
        duration_label="Dauer:",
        completed="Aktualisierung abgeschlossen!",
        press_enter="Drücken Sie die Eingabetaste zum Beenden...",
        trailer_pattern=re.compile(
            r"^\d+\s+Aktualisierung(?:en)?\s+verfügbar\.?$", re.IGNORECASE
        ),
    ),
}

# --- Data Structures ---


@dataclass(frozen=True, kw_only=True)
class PackageRecord:
    """Represents one row of the winget upgrade table."""

    name: str
    id: str
    current_version: str
    available_version: str
    source: str


class UpdateOutcome(enum.Enum):
    """Classification of a single package during the update pass."""

    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class UpdateStats:
    """Stores statistics about the update process."""

    updated_count: int = 0
    skipped_count: int = 0
    outcomes: List[Tuple[PackageRecord, UpdateOutcome]] = field(default_factory=list)
    failed_packages: List[Tuple[PackageRecord, str]] = field(default_factory=list)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @property
    def duration(self) -> Optional[float]:
        """Calculates the duration of the update process in seconds."""
        if self.start_time and self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return None

    @property
    def updated_packages(self) -> List[PackageRecord]:
        return [
            record
            for record, outcome in self.outcomes
            if outcome is UpdateOutcome.UPDATED
        ]

    def record(self, package: PackageRecord, outcome: UpdateOutcome) -> None:
        """Folds a single outcome into the running counters."""
        self.outcomes.append((package, outcome))
        if outcome is UpdateOutcome.UPDATED:
            self.updated_count += 1
        elif outcome is UpdateOutcome.SKIPPED:
            self.skipped_count += 1


# --- Time Operations ---
@contextlib.contextmanager
def timed_block(name: Optional[str] = "Updater"):
    start = time.perf_counter()
    try:
        yield
    finally:
        logger.debug(
            f"{name} completed in {format_duration(time.perf_counter() - start)}"
        )


def format_duration(seconds: float) -> str:
    """
    Converts a duration in seconds into a human-readable string using the most appropriate time unit.

    Args:
        seconds (float): The total duration in seconds.

    Returns:
        str: A human-friendly string representation of the duration.
    """
    SECONDS_PER_MINUTE: Final = 60
    SECONDS_PER_HOUR: Final = 3600

    if seconds < SECONDS_PER_MINUTE:
        value = float(seconds)
        unit = "second"
    elif seconds < SECONDS_PER_HOUR:
        value = seconds / SECONDS_PER_MINUTE
        unit = "minute"
    else:
        value = seconds / SECONDS_PER_HOUR
        unit = "hour"

    display_value = int(round(value, 0))
    plural = "s" if display_value != 1 else ""

    return f"{display_value} {unit}{plural}"


# --- Upgrade Table Parsing ---


def is_terminator_line(line: str) -> bool:
    """
    Tells whether `line` marks the end of the parsable table region.

    A blank line or the "N upgrades available" trailer of any known locale
    ends the table, independent of the locale chosen for messages.
    """
    stripped = line.strip()
    if not stripped:
        return True
    return any(
        messages.trailer_pattern.match(stripped) for messages in LOCALES.values()
    )


def parse_line(line: str) -> Optional[PackageRecord]:
    """
    Parses a single row of the upgrade table.

    The last four fields are read from the end of the row as id, current
    version, available version and source; every field before them belongs
    to the package name, which may contain spaces. A row whose id, version
    or source contains a space is split wrongly; winget gives no delimiter
    that would allow telling those cases apart.

    Args:
        line: One line of the upgrade table.

    Returns:
        The parsed record, or None if the row has fewer than five fields.
    """
    stripped = line.strip()
    if len(stripped.split()) < MIN_FIELD_COUNT:
        return None

    fields = _FIELD_PATTERN.findall(stripped)
    if len(fields) < MIN_FIELD_COUNT:
        return None

    package_id, current, available, source = fields[-TRAILING_FIELD_COUNT:]
    name = " ".join(fields[:-TRAILING_FIELD_COUNT])

    return PackageRecord(
        name=name,
        id=package_id,
        current_version=current,
        available_version=available,
        source=source,
    )


def split_table_lines(raw_output: str) -> List[str]:
    """
    Splits winget output into lines at line feeds only.

    winget redraws its progress spinner with bare carriage returns; only the
    text after the last carriage return of a line stays visible on screen.
    """
    lines: List[str] = []
    for line in raw_output.split("\n"):
        line = line.removesuffix("\r")
        lines.append(line.rsplit("\r", 1)[-1])
    return lines


def parse_upgrade_table(raw_output: str) -> List[PackageRecord]:
    """
    Converts the captured stdout of `winget upgrade` into package records.

    The first two lines (title and column header) are skipped without being
    inspected. Parsing stops at the first blank or trailer line; rows that do
    not parse are dropped. Records keep the order of the table.
    """
    lines = split_table_lines(raw_output)[HEADER_LINE_COUNT:]
    records: List[PackageRecord] = []

    for line_num, line in enumerate(lines, HEADER_LINE_COUNT + 1):
        if is_terminator_line(line):
            logger.trace(f"Table ends at line {line_num}: {line.strip()!r}")
            break

        record = parse_line(line)
        if record is None:
            logger.debug(f"Dropping unparsable line {line_num}: {line!r}")
            continue

        logger.trace(f"Parsed line {line_num}: {record}")
        records.append(record)

    return records


# --- Console Helpers ---


def check_console_codepage() -> Optional[int]:
    """
    Returns the console output code page on Windows, None elsewhere.
    """
    if os.name != "nt":
        return None

    import ctypes

    return int(ctypes.windll.kernel32.GetConsoleOutputCP())


@contextlib.contextmanager
def listing_snapshot(
    raw_output: str, path: Path, console: Console, messages: Messages
) -> Iterator[Path]:
    """
    Writes the raw upgrade listing to `path` for the duration of the run.

    The file is removed on every exit path, including when the body raises.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(raw_output, encoding="utf-8")
        console.print(
            f"[yellow]{escape('[INFO]')}[/yellow] "
            f"{escape(messages.listing_saved.format(path=path))}"
        )
        yield path
    finally:
        console.print(
            f"\n[yellow]{escape('[CLEANING]')}[/yellow] {escape(messages.cleaning)}"
        )
        try:
            path.unlink()
            console.print(
                f"[green]{escape('[SUCCESS]')}[/green] {escape(messages.file_removed)}"
            )
        except OSError as e:
            logger.debug(f"Failed to remove listing file '{path}': {e}")
            console.print(
                f"[yellow]{escape('[WARNING]')}[/yellow] "
                f"{escape(messages.file_not_removed.format(path=path))}"
            )


# --- The Main Class ---


class WingetUpdater:
    """
    Lists pending winget upgrades and installs them one after another,
    skipping packages whose name contains an excluded substring.

    Args:
        exclude_packages (Optional[Iterable[str]]): Name substrings never updated.
        locale (str): Key into LOCALES used for status and summary text.
        winget_executable (str): Name or path of the winget executable.
        log_level (str): Minimum console logging level.
        log_to_file (bool): Whether to log to a file.
        log_file_path (str | Path): Path for the log file.
        rich_console (bool): Use Rich for enhanced console output.
        post_update_command (Optional[Sequence[str]]): Command run once after the update pass.
    """

    def __init__(
        self: Self,
        exclude_packages: Optional[Iterable[str]] = None,
        locale: str = DEFAULT_LOCALE,
        winget_executable: str = DEFAULT_WINGET_EXECUTABLE,
        log_level: str = "INFO",
        log_to_file: bool = True,
        log_file_path: str | Path = DEFAULT_LOG_FILE,
        rich_console: bool = True,
        post_update_command: Optional[Sequence[str]] = None,
    ) -> None:
        if locale not in LOCALES:
            raise ValueError(
                f"Unsupported locale '{locale}'. Choose one of: {', '.join(LOCALES)}"
            )

        self.exclude_packages: frozenset[str] = frozenset(
            exclude_packages if exclude_packages is not None else DEFAULT_EXCLUDED_APPS
        )
        self.locale: str = locale
        self.messages: Messages = LOCALES[locale]
        self.winget_executable: str = winget_executable
        self.log_level: str = log_level.upper()
        self.log_to_file: bool = log_to_file
        self.log_file_path: Path = Path(log_file_path)
        self.use_rich_console: bool = rich_console
        self.post_update_command: List[str] = list(post_update_command or [])
        self.log_console = Console(
            stderr=True,
            theme=Theme(
                {
                    "logging.level.info": "bold magenta",
                }
            ),
        )
        self.console = Console(
            highlight=False,
            soft_wrap=True,
            no_color=not rich_console,
        )

        self._setup_logger()

        self.stats: UpdateStats = UpdateStats()

        logger.info("WingetUpdater initialized")
        logger.debug(f"Excluded packages: {sorted(self.exclude_packages)}")
        logger.debug(f"Locale: {self.locale}")
        logger.debug(f"Winget executable: {self.winget_executable}")
        logger.debug(f"Log level: {self.log_level}")
        logger.debug(
            f"Log to file: {self.log_to_file} (Path: {self.log_file_path if self.log_to_file else 'Disabled'})"
        )
        logger.debug(f"Rich console: {self.use_rich_console}")
        logger.debug(f"Post-update command: {self.post_update_command or 'None'}")
        logger.debug(
            f"Platform: {platform.system()} {platform.release()} ({platform.machine()})"
        )

    def _setup_logger(self: Self) -> None:
        """Configures the Loguru logger."""
        logger.remove()  # Remove default handler

        file_log_format = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"
        stderr_log_format = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"

        if self.use_rich_console:
            logger.add(
                RichHandler(
                    console=self.log_console,
                    rich_tracebacks=True,
                    markup=False,
                    show_path=True,
                ),
                level=self.log_level,
                format="{message}",
            )
        else:
            logger.add(
                sys.stderr,
                level=self.log_level,
                format=stderr_log_format,
                colorize=True,
            )

        if self.log_to_file:
            try:
                self.log_file_path.parent.mkdir(parents=True, exist_ok=True)
                logger.add(
                    self.log_file_path,
                    level="DEBUG",
                    format=file_log_format,
                    rotation="10 MB",
                    retention="7 days",
                    encoding="utf-8",
                )
                logger.info(f"Logging detailed output to file: {self.log_file_path}")
            except OSError as e:
                print(
                    f"ERROR: Failed to configure file logging to {self.log_file_path}: {e}",
                    file=sys.stderr,
                )
                self.log_to_file = False

        logger.debug("Logger configured successfully.")

    # --- Status output ---

    def print_status(self: Self, tag: str, style: str, message: str) -> None:
        """Prints one tagged status line to stdout."""
        self.console.print(f"[{style}]{escape(tag)}[/{style}] {escape(message)}")

    def print_banner(self: Self) -> None:
        """Prints the opening banner."""
        rule = "=" * BANNER_WIDTH
        self.console.print(f"[cyan]{rule}[/cyan]")
        self.console.print("[bold green]  WINGET UPDATE SCRIPT[/bold green]")
        self.console.print(f"[cyan]{rule}[/cyan]")

    def warn_if_console_not_utf8(self: Self) -> None:
        """Prints a warning when the Windows console does not use UTF-8."""
        try:
            codepage = check_console_codepage()
        except (AttributeError, OSError) as e:
            logger.debug(f"Could not query console code page: {e}")
            return

        if codepage is not None and codepage != UTF8_CODE_PAGE:
            self.print_status(
                "[WARNING]",
                "yellow",
                self.messages.codepage_warning.format(codepage=codepage),
            )

    # --- Winget invocation ---

    def _run_winget_command(
        self: Self, args: Sequence[str]
    ) -> Tuple[str, str, int]:
        """Runs a winget command using subprocess, decoding output as UTF-8."""
        full_command = [self.winget_executable, *args]
        command_str = " ".join(full_command)
        logger.debug(f"Executing command: {command_str}")
        try:
            process = subprocess.run(
                full_command,
                capture_output=True,
                check=False,
            )
        except FileNotFoundError:
            logger.error(
                f"'{self.winget_executable}' command not found. Is winget installed?"
            )
            raise WingetCommandError(
                command=command_str, stderr="winget command not found", return_code=-1
            )
        except (OSError, ValueError, subprocess.SubprocessError) as e:
            logger.opt(exception=True).debug(
                "Traceback for subprocess launch error:"
            )
            raise WingetCommandError(
                command=command_str, stderr=str(e), return_code=-1
            ) from e

        logger.debug(f"Command finished with return code: {process.returncode}")

        # Decoded outside text mode so bare carriage returns survive.
        stdout = (process.stdout or b"").decode("utf-8", errors="replace")
        stderr = (process.stderr or b"").decode("utf-8", errors="replace").strip()

        if stdout.strip():
            logger.trace(f"Command stdout:\n{stdout}")
        if stderr:
            log_level = "ERROR" if process.returncode != 0 else "WARNING"
            logger.log(log_level, f"Command stderr: {stderr}")

        return stdout, stderr, process.returncode

    def list_upgrades(self: Self) -> Tuple[str, List[PackageRecord]]:
        """
        Runs the winget listing command and parses its table.

        Returns:
            The raw listing text and the parsed records in table order.

        Raises:
            WingetCommandError: If winget cannot be launched or exits non-zero.
        """
        logger.info("Retrieving list of pending upgrades...")
        with timed_block("Listing"):
            stdout, stderr, return_code = self._run_winget_command(LIST_UPGRADES_ARGS)

        if return_code != 0:
            raise WingetCommandError(
                command=" ".join([self.winget_executable, *LIST_UPGRADES_ARGS]),
                stderr=stderr,
                return_code=return_code,
            )

        records = parse_upgrade_table(stdout)
        logger.info(f"Found {len(records)} packages with pending upgrades.")
        return stdout, records

    def is_excluded(self: Self, package: PackageRecord) -> bool:
        """A package is excluded if any exclusion entry is a substring of its name."""
        return any(entry in package.name for entry in self.exclude_packages)

    def update_package(self: Self, package: PackageRecord) -> None:
        """
        Updates a single package by its id.

        Raises:
            PackageUpdateError: If winget cannot be launched or exits non-zero.
        """
        command = [*UPDATE_ARGS, package.id, *AGREEMENT_ARGS]
        try:
            _, _, return_code = self._run_winget_command(command)
        except WingetCommandError as e:
            raise PackageUpdateError(package.id, e.stderr) from e

        if return_code != 0:
            raise PackageUpdateError(
                package.id, f"Winget command failed (code {return_code})"
            )

    def process_package(self: Self, package: PackageRecord) -> UpdateOutcome:
        """Classifies and, unless excluded, updates one package."""
        if self.is_excluded(package):
            logger.info(f"Skipping update for '{package.name}': explicitly excluded.")
            self.print_status(
                "[SKIPPED]",
                "yellow",
                self.messages.excluded.format(name=package.name),
            )
            return UpdateOutcome.SKIPPED

        self.print_status("[UPDATING]", "green", package.name)
        logger.info(
            f"Attempting update for: {package.name} (id {package.id}, {package.current_version} -> {package.available_version})"
        )
        spinner: contextlib.AbstractContextManager = contextlib.nullcontext()
        if self.use_rich_console and self.console.is_terminal:
            spinner = self.console.status(f"[cyan]{escape(package.id)}")
        try:
            with spinner:
                self.update_package(package)
        except PackageUpdateError as e:
            logger.error(str(e))
            self.stats.failed_packages.append((package, e.reason))
            self.print_status(
                "[ERROR]", "red", self.messages.update_failed.format(name=package.name)
            )
            return UpdateOutcome.FAILED

        logger.success(f"Successfully updated {package.name}")
        self.print_status(
            "[SUCCESS]", "green", self.messages.updated.format(name=package.name)
        )
        return UpdateOutcome.UPDATED

    def update_packages(self: Self, packages: Iterable[PackageRecord]) -> UpdateStats:
        """
        Processes every package in order, one blocking winget call at a time.

        Failures are reported as they happen and never stop the loop.
        """
        self.stats = UpdateStats(start_time=datetime.now())
        self.print_status("[INFO]", "yellow", self.messages.processing)
        self.console.print()

        with timed_block("Update pass"):
            for package in packages:
                outcome = self.process_package(package)
                self.stats.record(package, outcome)
                self.console.print()

        self.stats.end_time = datetime.now()
        return self.stats

    def check_packages(self: Self, packages: Iterable[PackageRecord]) -> UpdateStats:
        """Classifies packages without updating any of them."""
        self.stats = UpdateStats(start_time=datetime.now())

        for package in packages:
            if self.is_excluded(package):
                self.print_status(
                    "[SKIPPED]",
                    "yellow",
                    self.messages.excluded.format(name=package.name),
                )
                self.stats.record(package, UpdateOutcome.SKIPPED)
                continue
            self.print_status(
                "[INFO]",
                "yellow",
                self.messages.pending.format(
                    name=package.name,
                    id=package.id,
                    current=package.current_version,
                    available=package.available_version,
                ),
            )

        self.stats.end_time = datetime.now()
        return self.stats

    def run_post_update_command(self: Self) -> bool:
        """
        Runs the configured post-update command, if any.

        Returns:
            True if the command succeeded or none is configured, False otherwise.
        """
        if not self.post_update_command:
            return True

        command_str = " ".join(self.post_update_command)
        rule = "=" * BANNER_WIDTH
        self.console.print(f"\n[cyan]{rule}[/cyan]")
        self.console.print(
            f"[green]{escape(self.messages.post_update.format(command=command_str))}[/green]"
        )
        self.console.print(f"[cyan]{rule}[/cyan]")

        try:
            try:
                process = subprocess.run(self.post_update_command, check=False)
            except OSError as e:
                raise PostUpdateCommandError(command_str, str(e)) from e
            if process.returncode != 0:
                raise PostUpdateCommandError(
                    command_str, f"exit code {process.returncode}"
                )
        except PostUpdateCommandError as e:
            logger.error(str(e))
            self.print_status(
                "[ERROR]",
                "red",
                self.messages.post_update_failed.format(reason=e.reason),
            )
            return False

        self.print_status("[SUCCESS]", "green", self.messages.post_update_success)
        return True

    def print_summary(self: Self) -> None:
        """Prints the summary block, with Rich tables if enabled."""
        stats = self.stats
        messages = self.messages
        rule = "=" * BANNER_WIDTH

        self.console.print(f"\n\n[cyan]{rule}[/cyan]")
        self.console.print(f"[green]{escape(messages.summary_title)}[/green]")
        self.console.print(f"[cyan]{rule}[/cyan]")
        self.console.print(
            f"[green]{escape(messages.updated_label)}[/green] {stats.updated_count}"
        )
        self.console.print(
            f"[yellow]{escape(messages.skipped_label)}[/yellow] {stats.skipped_count}"
        )
        if stats.failed_packages:
            self.console.print(
                f"[red]{escape(messages.failed_label)}[/red] {len(stats.failed_packages)}"
            )
        if stats.duration is not None:
            self.console.print(
                f"{escape(messages.duration_label)} {format_duration(stats.duration)}"
            )

        if self.use_rich_console:
            updated = stats.updated_packages
            if updated:
                success_table = Table(
                    title="[bold green]Successful Updates[/]",
                    show_header=True,
                    header_style="bold blue",
                )
                success_table.add_column("Package", style="cyan", no_wrap=True)
                success_table.add_column("Id", style="magenta")
                success_table.add_column("Old Version", style="yellow")
                success_table.add_column("New Version", style="green")
                for package in updated:
                    success_table.add_row(
                        escape(package.name),
                        escape(package.id),
                        escape(package.current_version),
                        escape(package.available_version),
                    )
                self.console.print(success_table)

            if stats.failed_packages:
                fail_table = Table(
                    title="[bold red]Failed Updates[/]",
                    show_header=True,
                    header_style="bold red",
                )
                fail_table.add_column("Package", style="cyan", no_wrap=True)
                fail_table.add_column("Id", style="magenta")
                fail_table.add_column("Reason", style="red")
                for package, reason in stats.failed_packages:
                    fail_table.add_row(
                        f"[bold red]{escape(package.name)}[/]",
                        escape(package.id),
                        escape(reason),
                    )
                self.console.print(fail_table)

        self.console.print(f"[cyan]{rule}[/cyan]")
        self.console.print(f"[green]{escape(messages.completed)}[/green]")
        self.console.print(f"[cyan]{rule}[/cyan]")

    def run(
        self: Self, check_only: bool = False, listing_file: Optional[Path] = None
    ) -> UpdateStats:
        """
        Runs a full pass: list, parse, update (or only classify), summarize.

        Raises:
            WingetCommandError: If the listing command fails. No package is
                                touched in that case.
        """
        self.print_status("[INFO]", "yellow", self.messages.checking)
        raw_output, packages = self.list_upgrades()

        snapshot: contextlib.AbstractContextManager = contextlib.nullcontext()
        if listing_file is not None:
            snapshot = listing_snapshot(
                raw_output, listing_file, self.console, self.messages
            )

        with snapshot:
            if not packages:
                now = datetime.now()
                self.stats = UpdateStats(start_time=now, end_time=now)
                self.print_status("[INFO]", "yellow", self.messages.no_updates)
            elif check_only:
                self.check_packages(packages)
            else:
                self.update_packages(packages)

            if check_only:
                self.print_status("[INFO]", "yellow", self.messages.check_only)
            else:
                self.run_post_update_command()

        self.print_summary()
        return self.stats

    def wait_for_enter(self: Self) -> None:
        """Blocks on a single line of input before the process exits."""
        try:
            self.console.input(f"\n{escape(self.messages.press_enter)}")
        except (EOFError, KeyboardInterrupt):
            pass


# --- CLI Argument Parsing ---
def parse_arguments(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parses command-line arguments using argparse."""
    parser = argparse.ArgumentParser(
        description="Winget Package Updater",
        formatter_class=lambda prog: argparse.RawTextHelpFormatter(
            prog, max_help_position=80
        ),
        epilog=f"""
Default exclusions: {', '.join(DEFAULT_EXCLUDED_APPS)}

Example Usage:
  # Update everything except the default exclusions
  winget-updater

  # Only show what would be updated, in German
  winget-updater --check-only --locale de

  # Also exclude anything named like "Steam" and update the Rust toolchain afterwards
  winget-updater --exclude Steam --post-update-command "rustup update"
""",
    )

    exclusion_group = parser.add_argument_group("Exclusion Options")
    logging_group = parser.add_argument_group("Logging Options")
    execution_group = parser.add_argument_group("Execution Options")

    exclusion_group.add_argument(
        "--exclude",
        type=str,
        nargs="*",
        default=[],
        metavar="NAME",
        help="Package name substrings to exclude (case-sensitive).",
    )
    exclusion_group.add_argument(
        "--exclude-file",
        type=Path,
        metavar="FILE_PATH",
        help="Path to a text file containing name substrings to exclude (one per line).",
    )
    exclusion_group.add_argument(
        "--no-default-excludes",
        action="store_true",
        help=f"Do not exclude the built-in list ({', '.join(DEFAULT_EXCLUDED_APPS)}).",
    )

    logging_group.add_argument(
        "--log-level",
        type=str.upper,
        choices=["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
        help="Set the minimum console logging level (default: INFO).",
    )
    logging_group.add_argument(
        "--log-file-path",
        type=Path,
        default=DEFAULT_LOG_FILE,
        metavar="PATH",
        help=f"Path to the log file (default: {DEFAULT_LOG_FILE}).",
    )
    logging_group.add_argument(
        "--no-log-file",
        action="store_false",
        dest="log_to_file",
        help="Disable logging to a file.",
    )
    logging_group.add_argument(
        "--no-rich-console",
        action="store_false",
        dest="rich_console",
        help="Disable rich formatting (colors, tables) in console output.",
    )

    execution_group.add_argument(
        "--locale",
        choices=sorted(LOCALES),
        default=DEFAULT_LOCALE,
        help=f"Language of status messages (default: {DEFAULT_LOCALE}).",
    )
    execution_group.add_argument(
        "--winget",
        type=str,
        default=DEFAULT_WINGET_EXECUTABLE,
        metavar="PATH",
        dest="winget_executable",
        help=f"Winget executable to invoke (default: {DEFAULT_WINGET_EXECUTABLE}).",
    )
    execution_group.add_argument(
        "--check-only",
        action="store_true",
        help="List pending upgrades without installing them.",
    )
    execution_group.add_argument(
        "--listing-file",
        type=Path,
        metavar="PATH",
        help="Keep a copy of the raw upgrade listing at PATH while the run lasts.",
    )
    execution_group.add_argument(
        "--post-update-command",
        type=str,
        metavar="CMD",
        help="Command to run once after all updates (e.g. \"rustup update\").",
    )
    execution_group.add_argument(
        "--no-pause",
        action="store_false",
        dest="pause",
        help="Do not wait for Enter before exiting.",
    )

    args = parser.parse_args(argv)

    if args.exclude_file:
        try:
            resolved_exclude_file = args.exclude_file.resolve(strict=True)
            if not resolved_exclude_file.is_file():
                parser.error(f"Exclude path is not a file: {resolved_exclude_file}")
        except FileNotFoundError:
            parser.error(f"Exclude file not found: {args.exclude_file}")

    if args.post_update_command is not None:
        try:
            args.post_update_command = shlex.split(args.post_update_command)
        except ValueError as e:
            parser.error(f"Invalid --post-update-command: {e}")
        if not args.post_update_command:
            parser.error("--post-update-command cannot be empty.")

    return args


def read_exclude_file(file_path: Path) -> List[str]:
    """Reads name substrings from a file. Entries may contain spaces."""
    if not file_path:
        return []
    entries: List[str] = []
    print(f"Reading exclusion list from: {file_path}")
    with file_path.open("r", encoding="utf-8", errors="replace") as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#") and line not in entries:
                entries.append(line)
    print(f"Read {len(entries)} unique exclusion entries from exclude file.")
    return entries


def build_exclusions(args: argparse.Namespace) -> List[str]:
    """Combines the built-in, command-line and file exclusions."""
    exclusions: List[str] = [] if args.no_default_excludes else list(DEFAULT_EXCLUDED_APPS)
    extra = list(args.exclude)
    if args.exclude_file:
        extra.extend(read_exclude_file(args.exclude_file))
    for entry in extra:
        if entry and entry not in exclusions:
            exclusions.append(entry)
    return exclusions


# --- Main Execution Block ---


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Main function to parse arguments and run the updater."""
    args = parse_arguments(argv)

    try:
        exclusions = build_exclusions(args)
    except OSError as e:
        print(f"Error: Could not read exclude file '{args.exclude_file}': {e}", file=sys.stderr)
        sys.exit(1)

    updater = WingetUpdater(
        exclude_packages=exclusions,
        locale=args.locale,
        winget_executable=args.winget_executable,
        log_level=args.log_level,
        log_to_file=args.log_to_file,
        log_file_path=args.log_file_path,
        rich_console=args.rich_console,
        post_update_command=args.post_update_command,
    )

    exit_code = 0
    try:
        updater.warn_if_console_not_utf8()
        updater.print_banner()
        updater.console.print()
        updater.run(check_only=args.check_only, listing_file=args.listing_file)
    except WingetCommandError as e:
        logger.critical(f"A critical error occurred: {e}")
        updater.print_status(
            "[ERROR]",
            "red",
            updater.messages.listing_failed.format(reason=e.stderr or e.return_code),
        )
        exit_code = 1
    except KeyboardInterrupt:
        logger.warning("\nProcess interrupted by user (Ctrl+C).")
        exit_code = 1
    except Exception as e:
        logger.opt(exception=True).critical(f"An unexpected error occurred: {e}")
        exit_code = 1
    finally:
        logger.info(f"WingetUpdater finished with exit code {exit_code}.")
        if args.pause:
            updater.wait_for_enter()
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
