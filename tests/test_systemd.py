import pytest

from debcontrol.assets import Asset
from debcontrol.config import SystemdUnitsConfig
from debcontrol.systemd import (
    find_systemd_units,
    generate_systemd_fragments,
)


def _asset(path: str) -> Asset:
    return Asset(path, source_size=100)


@pytest.fixture()
def unit_assets():
    return (
        _asset("usr/bin/foo"),
        _asset("lib/systemd/system/foo.service"),
        _asset("lib/systemd/system/foo.socket"),
        _asset("usr/lib/systemd/system/foo.service"),
        _asset("lib/systemd/system/foo.service.d/override.conf"),
        _asset("lib/systemd/system/README"),
        _asset("etc/systemd/system/bar.service"),
        _asset("usr/lib/systemd/system/foo-worker@.service"),
    )


def _fragments(assets, listener, **kwargs):
    return generate_systemd_fragments(
        "debian",
        "foo",
        assets,
        SystemdUnitsConfig(**kwargs),
        listener,
    )


def test_find_systemd_units(unit_assets) -> None:
    units = find_systemd_units(unit_assets)
    assert [u.name for u in units] == [
        "foo-worker@.service",
        "foo.service",
        "foo.socket",
    ]
    assert units[1].target_path == "lib/systemd/system/foo.service"
    assert [u.is_template for u in units] == [True, False, False]


@pytest.mark.parametrize(
    "unit_name,expected",
    [
        ("foo", ["foo.service", "foo.socket"]),
        ("foo-worker@", ["foo-worker@.service"]),
        ("bar", []),
    ],
)
def test_find_systemd_units_by_name(unit_assets, unit_name, expected) -> None:
    units = find_systemd_units(unit_assets, unit_name)
    assert [u.name for u in units] == expected


def test_fragments_default_options(unit_assets, listener) -> None:
    fragments = _fragments(unit_assets, listener)
    assert set(fragments) == {"postinst", "prerm", "postrm"}

    postinst = fragments["postinst"]
    assert postinst.startswith("# Automatically added by debcontrol/")
    assert postinst.endswith("# End automatically added section\n")
    assert "deb-systemd-helper enable foo.service" in postinst
    assert "deb-systemd-helper enable foo.socket" in postinst
    assert "foo-worker" not in postinst
    assert "_dh_action=restart" in postinst
    assert "deb-systemd-invoke $_dh_action foo.service foo.socket" in postinst
    assert postinst.index("enable foo.service") < postinst.index("daemon-reload")

    prerm = fragments["prerm"]
    assert "deb-systemd-invoke stop foo.service foo.socket" in prerm
    # Units are restarted in postinst instead of being stopped on upgrades
    assert '[ "$1" = remove ]' in prerm

    postrm = fragments["postrm"]
    assert "deb-systemd-helper mask foo.service foo.socket" in postrm
    assert "deb-systemd-helper purge foo.service foo.socket" in postrm
    # postrm snippets are emitted in reverse order
    assert postrm.index("deb-systemd-helper purge") < postrm.index(
        "systemctl --system daemon-reload"
    )

    assert listener.warning_messages == []
    assert len(listener.info_messages) == 1
    assert "foo.service" in listener.info_messages[0]


def test_fragments_without_restart(unit_assets, listener) -> None:
    fragments = _fragments(unit_assets, listener, restart_after_upgrade=False)
    assert "_dh_action=start" in fragments["postinst"]
    assert "_dh_action=restart" not in fragments["postinst"]
    assert '[ "$1" = remove ]' not in fragments["prerm"]


def test_fragments_without_stop_on_upgrade(unit_assets, listener) -> None:
    fragments = _fragments(
        unit_assets,
        listener,
        restart_after_upgrade=False,
        stop_on_upgrade=False,
    )
    assert '[ "$1" = remove ]' in fragments["prerm"]


def test_fragments_without_enable_and_start(unit_assets, listener) -> None:
    fragments = _fragments(unit_assets, listener, enable=False, start=False)
    assert set(fragments) == {"postrm"}
    assert "daemon-reload" in fragments["postrm"]
    assert "deb-systemd-helper mask" not in fragments["postrm"]


def test_fragments_without_start(unit_assets, listener) -> None:
    fragments = _fragments(unit_assets, listener, start=False)
    assert set(fragments) == {"postinst", "postrm"}
    assert "deb-systemd-invoke" not in fragments["postinst"]
    assert "deb-systemd-helper enable foo.service" in fragments["postinst"]


def test_fragments_template_units_only(listener) -> None:
    assets = (_asset("lib/systemd/system/foo@.service"),)
    fragments = _fragments(assets, listener)
    assert set(fragments) == {"postrm"}
    assert "deb-systemd-helper" not in fragments["postrm"]


def test_fragments_without_units(listener) -> None:
    fragments = _fragments((_asset("usr/bin/foo"),), listener)
    assert fragments == {}
    assert listener.info_messages == []
    assert listener.warning_messages == ["No systemd units are installed by foo"]


def test_fragments_unknown_unit_name(unit_assets, listener) -> None:
    fragments = _fragments(unit_assets, listener, unit_name="bar")
    assert fragments == {}
    assert listener.warning_messages == [
        'No systemd unit named "bar" is installed by foo'
    ]
