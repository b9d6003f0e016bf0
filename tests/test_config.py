import os
import textwrap

import pytest

from debcontrol.config import PackageConfigParser, SystemdUnitsConfig
from debcontrol.exceptions import (
    DebcontrolFSError,
    ManifestParseException,
    ManifestTypeException,
)

MINIMAL_MANIFEST = textwrap.dedent(
    """\
    package: foo
    version: "1.0"
    architecture: amd64
    maintainer: A <a@b.c>
    description: A test package
    """
)


@pytest.fixture()
def manifest_parser(tmp_path) -> PackageConfigParser:
    return PackageConfigParser(str(tmp_path / "debcontrol.yaml"))


def test_parse_minimal_manifest(manifest_parser, tmp_path) -> None:
    config = manifest_parser.parse_manifest(fd=MINIMAL_MANIFEST)
    assert config.name == "foo"
    assert config.version == "1.0"
    assert config.priority == "optional"
    assert config.depends == "$auto"
    assert config.maintainer_scripts is None
    assert config.systemd_units is None
    assert config.assets == ()
    assert config.manifest_dir == str(tmp_path)
    assert config.workspace_dir == os.path.join(
        str(tmp_path), ".debcontrol", "scratch-dir", "systemd"
    )


def test_parse_manifest_from_file(tmp_path) -> None:
    manifest_path = tmp_path / "debcontrol.yaml"
    manifest_path.write_text(MINIMAL_MANIFEST)
    config = PackageConfigParser(str(manifest_path)).parse_manifest()
    assert config.architecture == "amd64"


def test_parse_full_manifest(manifest_parser, tmp_path) -> None:
    (tmp_path / "build").mkdir()
    (tmp_path / "build" / "foo").write_bytes(b"x" * 2048)
    os.symlink("foo", tmp_path / "build" / "foo-alias")
    manifest = MINIMAL_MANIFEST + textwrap.dedent(
        """\
        extended-description: |
          Foo is a tool for testing.
        section: utils
        depends: libc6, $auto
        repository: https://github.com/example/foo
        maintainer-scripts: debian/scripts
        triggers-file: debian/triggers
        scratch-dir: target/scratch
        conf-files:
          - /etc/foo.conf
          - /etc/foo.d/extra.conf
        systemd-units:
          unit-name: foo
          restart-after-upgrade: false
        assets:
          - source: build/foo
            dest: usr/bin/
          - [build/foo-alias, /usr/bin/foo-alias]
        """
    )
    config = manifest_parser.parse_manifest(fd=manifest)
    assert config.extended_description == "Foo is a tool for testing.\n"
    assert config.section == "utils"
    assert config.depends == "libc6, $auto"
    assert config.repository_type() == "Git"
    assert config.maintainer_scripts == os.path.join(str(tmp_path), "debian/scripts")
    assert config.triggers_file == os.path.join(str(tmp_path), "debian/triggers")
    assert config.workspace_dir == os.path.join(
        str(tmp_path), "target/scratch", "systemd"
    )
    assert config.conf_files == "/etc/foo.conf\n/etc/foo.d/extra.conf"
    assert config.systemd_units == SystemdUnitsConfig(
        unit_name="foo",
        restart_after_upgrade=False,
    )
    foo, foo_alias = config.assets
    assert foo.target_path == "usr/bin/foo"
    assert foo.source_size == 2048
    assert not foo.is_symlink
    assert foo_alias.target_path == "usr/bin/foo-alias"
    assert foo_alias.source_size is None
    assert foo_alias.is_symlink


@pytest.mark.parametrize(
    "value,expected",
    [
        ("true", SystemdUnitsConfig()),
        ("false", None),
        ("{enable: false}", SystemdUnitsConfig(enable=False)),
    ],
)
def test_parse_systemd_units(manifest_parser, value, expected) -> None:
    manifest = MINIMAL_MANIFEST + f"systemd-units: {value}\n"
    config = manifest_parser.parse_manifest(fd=manifest)
    assert config.systemd_units == expected


def test_unknown_key(manifest_parser) -> None:
    with pytest.raises(ManifestParseException) as e_info:
        manifest_parser.parse_manifest(fd=MINIMAL_MANIFEST + "pre-depends: bar\n")
    assert "pre-depends" in e_info.value.message


def test_unknown_systemd_key(manifest_parser) -> None:
    with pytest.raises(ManifestParseException) as e_info:
        manifest_parser.parse_manifest(
            fd=MINIMAL_MANIFEST + "systemd-units:\n  reload: true\n"
        )
    assert "systemd-units.reload" in e_info.value.message


def test_missing_keys(manifest_parser) -> None:
    manifest = "package: foo\nversion: '1.0'\n"
    with pytest.raises(ManifestParseException) as e_info:
        manifest_parser.parse_manifest(fd=manifest)
    assert "architecture, description, maintainer" in e_info.value.message


@pytest.mark.parametrize("name", ["Foo", "f", "foo_bar"])
def test_invalid_package_name(manifest_parser, name) -> None:
    manifest = MINIMAL_MANIFEST.replace("package: foo", f"package: {name}")
    with pytest.raises(ManifestParseException) as e_info:
        manifest_parser.parse_manifest(fd=manifest)
    assert "not a valid Debian package name" in e_info.value.message


def test_unquoted_version(manifest_parser) -> None:
    manifest = MINIMAL_MANIFEST.replace('version: "1.0"', "version: 1.10")
    with pytest.raises(ManifestTypeException) as e_info:
        manifest_parser.parse_manifest(fd=manifest)
    assert "please quote" in e_info.value.message


def test_invalid_conf_files(manifest_parser) -> None:
    with pytest.raises(ManifestTypeException):
        manifest_parser.parse_manifest(fd=MINIMAL_MANIFEST + "conf-files: 1\n")


def test_invalid_asset_entry(manifest_parser) -> None:
    with pytest.raises(ManifestTypeException):
        manifest_parser.parse_manifest(
            fd=MINIMAL_MANIFEST + "assets:\n  - [only-source]\n"
        )


@pytest.mark.parametrize("dest", ["../etc/foo", "usr/./bin/foo"])
def test_asset_dest_must_be_normalized(manifest_parser, tmp_path, dest) -> None:
    (tmp_path / "foo").write_text("content")
    manifest = MINIMAL_MANIFEST + f'assets:\n  - [foo, "{dest}"]\n'
    with pytest.raises(ManifestParseException) as e_info:
        manifest_parser.parse_manifest(fd=manifest)
    assert "assets[0]" in e_info.value.message
    assert dest in e_info.value.message
    assert isinstance(e_info.value.__cause__, ValueError)


def test_asset_must_be_file_or_symlink(manifest_parser, tmp_path) -> None:
    (tmp_path / "build").mkdir()
    manifest = MINIMAL_MANIFEST + "assets:\n  - [build, usr/share/foo]\n"
    with pytest.raises(DebcontrolFSError):
        manifest_parser.parse_manifest(fd=manifest)


def test_yaml_syntax_error(manifest_parser) -> None:
    with pytest.raises(ManifestParseException) as e_info:
        manifest_parser.parse_manifest(fd="package: [foo\n")
    assert "yamllint -d relaxed" in e_info.value.message


def test_manifest_must_be_a_mapping(manifest_parser) -> None:
    with pytest.raises(ManifestParseException):
        manifest_parser.parse_manifest(fd="- foo\n- bar\n")
