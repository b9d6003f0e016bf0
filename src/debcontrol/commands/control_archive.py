import argparse
import logging
import os
import textwrap

from debian.deb822 import Deb822

from debcontrol.assets import compute_asset_digests
from debcontrol.config import PackageConfigParser
from debcontrol.control_archive import assemble_control_archive
from debcontrol.exceptions import DebcontrolRuntimeError
from debcontrol.listener import LoggingListener
from debcontrol.tar_archive import ControlArchive
from debcontrol.util import (
    _error,
    _info,
    ColorizedArgumentParser,
    change_log_level,
    program_name,
    resolve_source_date_epoch,
    setup_logging,
)
from debcontrol.version import __version__


def parse_args() -> argparse.Namespace:
    description = textwrap.dedent(
        """\
    Assemble the control.tar member of a binary Debian package

    The package metadata, the installed assets, the maintainer scripts and
    the systemd integration are read from a YAML manifest.  The resulting
    control.tar is uncompressed; compressing it and wrapping it in the
    outer ar container is left to the caller.
    """
    )

    parser = ColorizedArgumentParser(
        description=description,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        allow_abbrev=False,
        prog=program_name(),
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "manifest",
        metavar="MANIFEST",
        help="The YAML manifest describing the package (such as debcontrol.yaml)",
    )
    parser.add_argument(
        "-o",
        "--output",
        dest="output_path",
        action="store",
        default=None,
        help="Where to write the control.tar.  If it is a directory, the base name will"
        " be determined from the package metadata.  Defaults to the directory of the"
        " manifest",
    )
    parser.add_argument(
        "--source-date-epoch",
        dest="source_date_epoch",
        action="store",
        type=int,
        default=None,
        help="Source date epoch (can also be given via the SOURCE_DATE_EPOCH environ variable",
    )
    parser.add_argument(
        "-d",
        "--debug",
        dest="debug_mode",
        action="store_true",
        default=False,
        help="Enable debug logging and raw stack traces on errors",
    )
    return parser.parse_args()


def compute_output_filename(archive: ControlArchive) -> str:
    control_content = archive["./control"].content.decode("utf-8")
    control_file = Deb822(control_content.splitlines())

    package_name = control_file["Package"]
    package_version = control_file["Version"]
    package_architecture = control_file["Architecture"]
    if ":" in package_version:
        package_version = package_version.split(":", 1)[1]

    return f"{package_name}_{package_version}_{package_architecture}.control.tar"


def main() -> None:
    setup_logging()
    parsed_args = parse_args()
    if parsed_args.debug_mode:
        change_log_level(logging.DEBUG)
    mtime = resolve_source_date_epoch(parsed_args.source_date_epoch)
    manifest_path: str = parsed_args.manifest

    try:
        config = PackageConfigParser(manifest_path).parse_manifest()
        asset_digests = compute_asset_digests(config.assets)
        archive = assemble_control_archive(
            config,
            mtime,
            asset_digests,
            LoggingListener(),
        )
        tar_bytes = archive.to_tar_bytes()
    except (DebcontrolRuntimeError, OSError) as e:
        if parsed_args.debug_mode:
            raise
        _error(e.message if isinstance(e, DebcontrolRuntimeError) else str(e))

    output_path = parsed_args.output_path
    if output_path is None:
        output_path = config.manifest_dir
    if output_path.endswith("/") or os.path.isdir(output_path):
        output_path = os.path.join(output_path, compute_output_filename(archive))

    with open(output_path, "wb") as fd:
        fd.write(tar_bytes)
    _info(f"Generated {output_path}")


if __name__ == "__main__":
    main()
