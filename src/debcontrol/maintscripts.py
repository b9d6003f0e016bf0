"""Assembly of the maintainer scripts for the control archive

User supplied maintainer scripts can be combined with generated shell
fragments (currently for systemd units).  The fragments replace the
`#DEBHELPER#` token in the user's scripts, or become a complete script
when the user did not provide one.  The merged scripts are staged in a
workspace directory, which takes precedence over the user's directory
when the scripts are picked for the archive.
"""

import contextlib
import dataclasses
import os
import shutil
from typing import (
    Callable,
    Dict,
    Iterator,
    Mapping,
    Optional,
    Sequence,
    Tuple,
)

from debcontrol.assets import Asset
from debcontrol.config import PackageConfig, SystemdUnitsConfig
from debcontrol.exceptions import MaintscriptTokenMissingError
from debcontrol.listener import Listener
from debcontrol.maintscript_snippet import (
    ALL_MAINTAINER_SCRIPTS,
    MAINTSCRIPT_TOKEN,
    STD_CONTROL_SCRIPTS,
)
from debcontrol.systemd import generate_systemd_fragments
from debcontrol.tar_archive import ControlArchive, SCRIPT_MODE

DEFAULT_SCRIPT_HEADER = "#!/bin/sh\nset -e\n\n"

FragmentGenerator = Callable[
    [str, str, Sequence[Asset], SystemdUnitsConfig, Listener],
    Mapping[str, str],
]


@dataclasses.dataclass(slots=True, frozen=True)
class ScriptSource:
    directory: str
    scripts: Mapping[str, bytes]

    def path_of(self, name: str) -> str:
        return os.path.join(self.directory, name)


def load_script_dir(directory: str) -> ScriptSource:
    scripts = {}
    for name in ALL_MAINTAINER_SCRIPTS:
        path = os.path.join(directory, name)
        if not os.path.isfile(path):
            continue
        with open(path, "rb") as fd:
            scripts[name] = fd.read()
    return ScriptSource(directory, scripts)


def resolve_first_match(
    search_path: Sequence[ScriptSource],
    name: str,
) -> Optional[Tuple[ScriptSource, bytes]]:
    for source in search_path:
        content = source.scripts.get(name)
        if content is not None:
            return source, content
    return None


def merge_maintscripts(
    user_scripts: Mapping[str, bytes],
    fragments: Mapping[str, str],
    *,
    user_scripts_dir: str = ".",
) -> Dict[str, bytes]:
    """Merge generated fragments into the user's maintainer scripts

    Returns the rewritten preinst, postinst, prerm and postrm scripts.
    Scripts the user did not provide are generated from scratch when there
    is a fragment for them.  A `#DEBHELPER#` token without a matching
    fragment is replaced by nothing.

    :raises MaintscriptTokenMissingError: if a user provided preinst,
      postinst, prerm or postrm has no `#DEBHELPER#` token, whether or not
      there is a fragment for it.
    """
    unknown_scripts = fragments.keys() - STD_CONTROL_SCRIPTS
    if unknown_scripts:
        known_scripts = ", ".join(sorted(STD_CONTROL_SCRIPTS))
        raise ValueError(
            f"Fragments can only be inserted into {known_scripts}"
            f" but got fragments for {', '.join(sorted(unknown_scripts))}"
        )
    token = MAINTSCRIPT_TOKEN.encode("ascii")
    merged = {}
    for name in sorted(STD_CONTROL_SCRIPTS):
        fragment = fragments.get(name)
        user_script = user_scripts.get(name)
        if user_script is None:
            if fragment is not None:
                merged[name] = (DEFAULT_SCRIPT_HEADER + fragment).encode("utf-8")
            continue
        if token not in user_script:
            path = os.path.join(user_scripts_dir, name)
            raise MaintscriptTokenMissingError(
                f"The maintainer script {path} must contain a"
                f" {MAINTSCRIPT_TOKEN} token marking where the generated"
                " shell snippets should be inserted",
                path,
            )
        if fragment is None:
            replacement = b""
        else:
            replacement = fragment.rstrip("\n").encode("utf-8")
        merged[name] = user_script.replace(token, replacement)
    return merged


def apply_fragments(
    workspace_dir: str,
    package_name: str,
    unit_name: Optional[str],
    user_scripts: ScriptSource,
    fragments: Mapping[str, str],
    listener: Listener,
) -> None:
    merged = merge_maintscripts(
        user_scripts.scripts,
        fragments,
        user_scripts_dir=user_scripts.directory,
    )
    label = package_name if unit_name is None else f"{package_name} ({unit_name})"
    for name, content in merged.items():
        dest = os.path.join(workspace_dir, name)
        with open(dest, "wb") as fd:
            fd.write(content)
            os.chmod(fd.fileno(), 0o755)
        if name not in fragments:
            listener.info(f"No generated snippets for {label} in {name}")
        elif name in user_scripts.scripts:
            listener.info(f"Inserted generated snippets for {label} into {name}")
        else:
            listener.info(f"Generated {name} for {label}")


@contextlib.contextmanager
def maintscript_workspace(workspace_dir: str) -> Iterator[str]:
    if os.path.lexists(workspace_dir):
        shutil.rmtree(workspace_dir)
    os.makedirs(workspace_dir, mode=0o755)
    try:
        yield workspace_dir
    finally:
        shutil.rmtree(workspace_dir)


def _display_path(path: str, manifest_dir: str) -> str:
    abs_path = os.path.abspath(path)
    abs_manifest_dir = os.path.abspath(manifest_dir)
    if os.path.commonpath([abs_path, abs_manifest_dir]) == abs_manifest_dir:
        return os.path.relpath(abs_path, abs_manifest_dir)
    return path


def generate_scripts(
    archive: ControlArchive,
    config: PackageConfig,
    listener: Listener,
    *,
    fragment_generator: FragmentGenerator = generate_systemd_fragments,
) -> None:
    scripts_dir = config.maintainer_scripts
    if scripts_dir is None:
        return
    user_scripts = load_script_dir(scripts_dir)
    search_path = [user_scripts]

    with contextlib.ExitStack() as stack:
        systemd_units = config.systemd_units
        if systemd_units is not None:
            workspace_dir = stack.enter_context(
                maintscript_workspace(config.workspace_dir)
            )
            fragments = fragment_generator(
                scripts_dir,
                config.name,
                config.assets,
                systemd_units,
                listener,
            )
            apply_fragments(
                workspace_dir,
                config.name,
                systemd_units.unit_name,
                user_scripts,
                fragments,
                listener,
            )
            # The merged scripts take precedence over the originals
            search_path.insert(0, load_script_dir(workspace_dir))

        for name in ALL_MAINTAINER_SCRIPTS:
            match = resolve_first_match(search_path, name)
            if match is None:
                continue
            source, content = match
            display_path = _display_path(source.path_of(name), config.manifest_dir)
            listener.info(f"Archiving {display_path}")
            archive.add_file(name, content, SCRIPT_MODE)
