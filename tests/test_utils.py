from typing import Sequence, Union

import pytest

from debcontrol.util import (
    escape_shell,
    resolve_source_date_epoch,
    unix_relative_path,
)


@pytest.mark.parametrize(
    "arg,expected",
    [
        ("foo.service", "foo.service"),
        ("foo bar", '"foo bar"'),
        ("a'b", r"""a\'b"""),
        ("foo@.service", r"foo\@.service"),
        ("--foo with $HOME", r'"--foo with \$HOME"'),
        (("foo.service", "foo.socket"), "foo.service foo.socket"),
    ],
)
def test_escape_shell(arg: Union[str, Sequence[str]], expected: str) -> None:
    actual = escape_shell(arg) if isinstance(arg, str) else escape_shell(*arg)
    assert actual == expected


@pytest.mark.parametrize(
    "path,expected",
    [
        ("usr/bin/foo", "usr/bin/foo"),
        ("/usr/bin/foo", "usr/bin/foo"),
        ("./usr/bin/foo", "usr/bin/foo"),
        ("usr\\share\\doc\\foo", "usr/share/doc/foo"),
        ("usr//lib/foo.so.1", "usr/lib/foo.so.1"),
    ],
)
def test_unix_relative_path(path: str, expected: str) -> None:
    assert unix_relative_path(path) == expected


@pytest.mark.parametrize("path", ["usr/../etc/passwd", "usr/./bin/foo"])
def test_unix_relative_path_rejects_unnormalized_paths(path: str) -> None:
    with pytest.raises(ValueError):
        unix_relative_path(path)


def test_source_date_epoch_from_command_line(monkeypatch) -> None:
    monkeypatch.setenv("SOURCE_DATE_EPOCH", "42")
    assert resolve_source_date_epoch(1700000000) == 1700000000


def test_source_date_epoch_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("SOURCE_DATE_EPOCH", "42")
    assert resolve_source_date_epoch(None) == 42


def test_source_date_epoch_defaults_to_now(monkeypatch) -> None:
    monkeypatch.setenv("SOURCE_DATE_EPOCH", "")
    monkeypatch.delenv("SOURCE_DATE_EPOCH")
    monkeypatch.setattr("time.time", lambda: 1234.5)
    assert resolve_source_date_epoch(None) == 1234
