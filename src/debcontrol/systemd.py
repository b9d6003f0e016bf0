import collections
import dataclasses
import os
import textwrap
from typing import Dict, List, Optional, Sequence, Mapping

from debcontrol import tool_with_version
from debcontrol.assets import Asset
from debcontrol.config import SystemdUnitsConfig
from debcontrol.listener import Listener
from debcontrol.maintscript_snippet import (
    MaintscriptSnippet,
    MaintscriptSnippetContainer,
    REVERSED_ORDER_SCRIPTS,
)
from debcontrol.util import escape_shell

SERVICE_MANAGER_IS_SYSTEMD_CONDITION = "[ -d /run/systemd/system ]"
POSTINST_DEFAULT_CONDITION = (
    '[ "$1" = "configure" ]'
    ' || [ "$1" = "abort-upgrade" ]'
    ' || [ "$1" = "abort-deconfigure" ]'
    ' || [ "$1" = "abort-remove" ]'
)
SYSTEMD_UNIT_DIRS = (
    "lib/systemd/system/",
    "usr/lib/systemd/system/",
)
SYSTEMD_UNIT_SUFFIXES = (
    ".service",
    ".socket",
    ".timer",
    ".path",
    ".mount",
    ".automount",
    ".swap",
    ".target",
    ".slice",
)


@dataclasses.dataclass(slots=True, frozen=True)
class SystemdUnit:
    name: str
    target_path: str

    @property
    def stem(self) -> str:
        return self.name.rsplit(".", 1)[0]

    @property
    def is_template(self) -> bool:
        return "@" in self.name


def find_systemd_units(
    assets: Sequence[Asset],
    unit_name: Optional[str] = None,
) -> List[SystemdUnit]:
    units = {}
    for asset in assets:
        target_path = asset.target_path
        # Drop-ins such as foo.service.d/override.conf are not units
        if os.path.dirname(target_path) + "/" not in SYSTEMD_UNIT_DIRS:
            continue
        name = os.path.basename(target_path)
        if not name.endswith(SYSTEMD_UNIT_SUFFIXES):
            continue
        unit = SystemdUnit(name, target_path)
        if unit_name is not None and unit.stem != unit_name:
            continue
        # The same unit may be shipped in both /lib and /usr/lib
        units.setdefault(name, unit)
    return sorted(units.values(), key=lambda u: u.name)


def _enable_snippet(unit: SystemdUnit) -> str:
    return textwrap.dedent(
        """\
        if {POSTINST_DEFAULT_CONDITION} ; then
            # This will only remove masks created by deb-systemd-helper on package removal.
            deb-systemd-helper unmask {UNITFILE} >/dev/null || true

            # was-enabled defaults to true, so new installations run enable.
            if deb-systemd-helper --quiet was-enabled {UNITFILE}; then
                # Enables the unit on first installation, creates new
                # symlinks on upgrades if the unit file has changed.
                deb-systemd-helper enable {UNITFILE} >/dev/null || true
            else
                # Update the statefile to add new symlinks (if any), which need to be
                # cleaned up on purge. Also remove old symlinks.
                deb-systemd-helper update-state {UNITFILE} >/dev/null || true
            fi
        fi
        """
    ).format(
        POSTINST_DEFAULT_CONDITION=POSTINST_DEFAULT_CONDITION,
        UNITFILE=escape_shell(unit.name),
    )


def _start_snippet(unit_files: str, restart_after_upgrade: bool) -> str:
    upgrade_action = "restart" if restart_after_upgrade else "start"
    return textwrap.dedent(
        """\
        if {POSTINST_DEFAULT_CONDITION} ; then
            if {SERVICE_MANAGER_IS_SYSTEMD_CONDITION} ; then
                systemctl --system daemon-reload >/dev/null || true
                if [ -n "$2" ]; then
                    _dh_action={UPGRADE_ACTION}
                else
                    _dh_action=start
                fi
                deb-systemd-invoke $_dh_action {UNITFILES} >/dev/null || true
            fi
        fi
        """
    ).format(
        POSTINST_DEFAULT_CONDITION=POSTINST_DEFAULT_CONDITION,
        SERVICE_MANAGER_IS_SYSTEMD_CONDITION=SERVICE_MANAGER_IS_SYSTEMD_CONDITION,
        UPGRADE_ACTION=upgrade_action,
        UNITFILES=unit_files,
    )


def _stop_snippet(unit_files: str, stop_on_upgrade: bool) -> str:
    condition = SERVICE_MANAGER_IS_SYSTEMD_CONDITION
    if not stop_on_upgrade:
        condition += ' && [ "$1" = remove ]'
    return textwrap.dedent(
        """\
        if {CONDITION} ; then
            deb-systemd-invoke stop {UNITFILES} >/dev/null || true
        fi
        """
    ).format(
        CONDITION=condition,
        UNITFILES=unit_files,
    )


def _daemon_reload_snippet() -> str:
    return textwrap.dedent(
        """\
        if {SERVICE_MANAGER_IS_SYSTEMD_CONDITION} ; then
            systemctl --system daemon-reload >/dev/null || true
        fi
        """
    ).format(
        SERVICE_MANAGER_IS_SYSTEMD_CONDITION=SERVICE_MANAGER_IS_SYSTEMD_CONDITION
    )


def _mask_and_purge_snippet(unit_files: str) -> str:
    return textwrap.dedent(
        """\
        if [ "$1" = "remove" ]; then
            if [ -x "/usr/bin/deb-systemd-helper" ]; then
                deb-systemd-helper mask {UNITFILES} >/dev/null || true
            fi
        fi

        if [ "$1" = "purge" ]; then
            if [ -x "/usr/bin/deb-systemd-helper" ]; then
                deb-systemd-helper purge {UNITFILES} >/dev/null || true
                deb-systemd-helper unmask {UNITFILES} >/dev/null || true
            fi
        fi
        """
    ).format(UNITFILES=unit_files)


def generate_systemd_fragments(
    user_scripts_dir: str,
    package_name: str,
    assets: Sequence[Asset],
    unit_options: SystemdUnitsConfig,
    listener: Listener,
) -> Mapping[str, str]:
    """Shell fragments for enabling, starting, stopping and restarting the units

    The result maps a maintainer script name (such as "postinst") to the
    fragment that replaces the `#DEBHELPER#` token in that script.  Scripts
    without any fragment are absent from the result.
    """
    unit_name = unit_options.unit_name
    units = find_systemd_units(assets, unit_name)
    if not units:
        if unit_name is not None:
            listener.warning(
                f'No systemd unit named "{unit_name}" is installed by {package_name}'
            )
        else:
            listener.warning(f"No systemd units are installed by {package_name}")
        return {}

    unit_names = ", ".join(u.name for u in units)
    listener.info(
        f"Generating systemd maintainer script fragments for {unit_names}"
        f" (to be merged with the scripts in {user_scripts_dir})"
    )
    snippets: Dict[str, MaintscriptSnippetContainer] = collections.defaultdict(
        MaintscriptSnippetContainer
    )
    active_units = [u for u in units if not u.is_template]
    active_unit_files = escape_shell(*(u.name for u in active_units))

    def _add(script: str, source: str, snippet: str) -> None:
        snippets[script].append(MaintscriptSnippet(f"systemd ({source})", snippet))

    if unit_options.enable:
        for unit in active_units:
            _add("postinst", f"enable {unit.name}", _enable_snippet(unit))
    if unit_options.start and active_units:
        _add(
            "postinst",
            "start",
            _start_snippet(active_unit_files, unit_options.restart_after_upgrade),
        )
        _add(
            "prerm",
            "stop",
            _stop_snippet(
                active_unit_files,
                unit_options.stop_on_upgrade
                and not unit_options.restart_after_upgrade,
            ),
        )
    _add("postrm", "daemon-reload", _daemon_reload_snippet())
    if unit_options.enable and active_units:
        _add("postrm", "mask and purge", _mask_and_purge_snippet(active_unit_files))

    fragments = {}
    for script, container in snippets.items():
        fragment = container.generate_snippet(
            tool_with_version(),
            reverse=script in REVERSED_ORDER_SCRIPTS,
        )
        if fragment is not None:
            fragments[script] = fragment
    return fragments
