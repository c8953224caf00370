import pytest
from unittest.mock import Mock

from winget_updater import WingetUpdater


SAMPLE_LISTING = """\
Name                 Id                          Version Available Source
-------------------------------------------------------------------------
Visual Studio Code   Microsoft.VisualStudioCode  1.84.0  1.85.1    winget
Git                  Git.Git                     2.42.0  2.43.0    winget
Discord Canary       Discord.Discord.Canary      1.0.1   1.0.2     winget
3 upgrades available.
"""


def completed(returncode=0, stdout="", stderr=""):
    """Stand-in for subprocess.CompletedProcess, carrying raw bytes like the real one"""
    return Mock(
        returncode=returncode,
        stdout=stdout.encode("utf-8"),
        stderr=stderr.encode("utf-8"),
    )


@pytest.fixture
def make_updater():
    """Factory for updaters that log to stderr only and print plain text"""

    def factory(**kwargs):
        kwargs.setdefault("log_to_file", False)
        kwargs.setdefault("rich_console", False)
        kwargs.setdefault("log_level", "WARNING")
        return WingetUpdater(**kwargs)

    return factory
