import dataclasses
import hashlib
import os
import stat
from typing import Optional, Iterable, Iterator, Dict

from debcontrol.exceptions import DebcontrolFSError
from debcontrol.util import unix_relative_path


@dataclasses.dataclass(slots=True, frozen=True)
class Asset:
    """A file slated for installation by the package

    The `target_path` is the installation path relative to the root of the
    file system (as in "usr/bin/foo").  Symlinks have no content digest and
    are therefore left out of the md5sums file.
    """

    target_path: str
    source_size: Optional[int]
    source_path: Optional[str] = None
    is_symlink: bool = False


@dataclasses.dataclass(slots=True, frozen=True)
class AssetSpec:
    source: str
    dest: str


def _target_path(spec: AssetSpec) -> str:
    dest = spec.dest
    if dest.endswith("/"):
        dest += os.path.basename(spec.source)
    return unix_relative_path(dest)


def resolve_assets(specs: Iterable[AssetSpec]) -> Iterator[Asset]:
    for spec in specs:
        st = os.lstat(spec.source)
        target_path = _target_path(spec)
        if stat.S_ISLNK(st.st_mode):
            yield Asset(
                target_path,
                source_size=None,
                source_path=spec.source,
                is_symlink=True,
            )
        elif stat.S_ISREG(st.st_mode):
            yield Asset(target_path, source_size=st.st_size, source_path=spec.source)
        else:
            raise DebcontrolFSError(
                f"The asset {spec.source} is not a regular file or a symlink."
                " Only files and symlinks can be installed as assets"
            )


def _md5_of(fs_path: str) -> str:
    file_hash = hashlib.md5()
    with open(fs_path, "rb") as f:
        while chunk := f.read(8192):
            file_hash.update(chunk)
    return file_hash.hexdigest()


def compute_asset_digests(assets: Iterable[Asset]) -> Dict[str, str]:
    return {
        asset.target_path: _md5_of(asset.source_path)
        for asset in assets
        if not asset.is_symlink and asset.source_path is not None
    }
