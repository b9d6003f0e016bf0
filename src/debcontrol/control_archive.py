from typing import Mapping, Sequence, Optional

from debcontrol.assets import Asset
from debcontrol.config import PackageConfig
from debcontrol.control_file import generate_control
from debcontrol.dependencies import DependencyResolver, no_auto_dependencies
from debcontrol.listener import Listener, LoggingListener
from debcontrol.maintscripts import (
    generate_scripts,
    FragmentGenerator,
)
from debcontrol.systemd import generate_systemd_fragments
from debcontrol.tar_archive import ControlArchive, METADATA_MODE
from debcontrol.util import unix_relative_path, _debug_log


def generate_md5sums(assets: Sequence[Asset], digests: Mapping[str, str]) -> bytes:
    """Content of the md5sums file; assets without a digest (symlinks) are skipped"""
    lines = []
    for asset in assets:
        digest = digests.get(asset.target_path)
        if digest is None:
            continue
        lines.append(f"{digest.lower()}  {unix_relative_path(asset.target_path)}\n")
    return "".join(lines).encode("utf-8")


def generate_conffiles(conf_files: str) -> bytes:
    return conf_files.encode("utf-8") + b"\n"


def generate_triggers_file(archive: ControlArchive, triggers_file: str) -> None:
    try:
        with open(triggers_file, "rb") as fd:
            content = fd.read()
    except OSError as e:
        _debug_log(
            f"Not adding a triggers file; could not read {triggers_file}: {e}"
        )
        return
    archive.add_file("./triggers", content, METADATA_MODE)


def assemble_control_archive(
    config: PackageConfig,
    timestamp: int,
    asset_digests: Mapping[str, str],
    listener: Optional[Listener] = None,
    *,
    dependency_resolver: DependencyResolver = no_auto_dependencies,
    fragment_generator: FragmentGenerator = generate_systemd_fragments,
) -> ControlArchive:
    """Build the members of the control.tar for the package

    The members are added in a fixed order (md5sums, control, conffiles,
    maintainer scripts and triggers) and share the `timestamp` as mtime.
    Any error aborts the assembly, so a partial archive is never returned.
    """
    if listener is None:
        listener = LoggingListener()
    archive = ControlArchive(timestamp)
    archive.add_file(
        "./md5sums",
        generate_md5sums(config.assets, asset_digests),
        METADATA_MODE,
    )
    archive.add_file(
        "./control",
        generate_control(config, listener, dependency_resolver),
        METADATA_MODE,
    )
    if config.conf_files is not None:
        archive.add_file(
            "./conffiles",
            generate_conffiles(config.conf_files),
            METADATA_MODE,
        )
    generate_scripts(
        archive,
        config,
        listener,
        fragment_generator=fragment_generator,
    )
    if config.triggers_file is not None:
        generate_triggers_file(archive, config.triggers_file)
    return archive


def generate_archive(
    config: PackageConfig,
    timestamp: int,
    asset_digests: Mapping[str, str],
    listener: Optional[Listener] = None,
    *,
    dependency_resolver: DependencyResolver = no_auto_dependencies,
    fragment_generator: FragmentGenerator = generate_systemd_fragments,
) -> bytes:
    """Uncompressed control.tar for the package"""
    archive = assemble_control_archive(
        config,
        timestamp,
        asset_digests,
        listener,
        dependency_resolver=dependency_resolver,
        fragment_generator=fragment_generator,
    )
    return archive.to_tar_bytes()
