import pytest

from debcontrol.assets import Asset
from debcontrol.config import PackageConfig
from debcontrol.listener import RecordingListener


@pytest.fixture()
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture()
def foo_assets():
    return (
        Asset("usr/bin/foo", source_size=1536),
        Asset("usr/share/doc/foo/README", source_size=512),
        Asset("usr/bin/foo-alias", source_size=None, is_symlink=True),
    )


@pytest.fixture()
def foo_config(foo_assets, tmp_path) -> PackageConfig:
    return PackageConfig(
        name="foo",
        version="1.0",
        architecture="amd64",
        maintainer="A <a@b.c>",
        description="A test package",
        depends="libc6",
        assets=foo_assets,
        manifest_dir=str(tmp_path),
    )


@pytest.fixture()
def user_scripts_dir(tmp_path):
    d = tmp_path / "maintainer-scripts"
    d.mkdir()
    return d
