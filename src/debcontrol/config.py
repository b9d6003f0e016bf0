import dataclasses
import os
from typing import (
    Optional,
    Tuple,
    Mapping,
    Any,
    Union,
    IO,
    List,
    FrozenSet,
)

from debcontrol.assets import Asset, AssetSpec, resolve_assets
from debcontrol.exceptions import ManifestParseException, ManifestTypeException
from debcontrol.util import (
    PKGNAME_REGEX,
    PKGVERSION_REGEX,
    escape_shell,
    unix_relative_path,
)
from debcontrol.yaml import MANIFEST_YAML, YAMLError

DEFAULT_PRIORITY = "optional"
AUTO_DEPENDS = "$auto"


@dataclasses.dataclass(slots=True, frozen=True)
class SystemdUnitsConfig:
    unit_name: Optional[str] = None
    enable: bool = True
    start: bool = True
    restart_after_upgrade: bool = True
    stop_on_upgrade: bool = True


@dataclasses.dataclass(slots=True, frozen=True)
class PackageConfig:
    name: str
    version: str
    architecture: str
    maintainer: str
    description: str
    priority: str = DEFAULT_PRIORITY
    extended_description: Optional[str] = None
    homepage: Optional[str] = None
    documentation: Optional[str] = None
    repository: Optional[str] = None
    section: Optional[str] = None
    depends: str = AUTO_DEPENDS
    build_depends: Optional[str] = None
    conflicts: Optional[str] = None
    breaks: Optional[str] = None
    replaces: Optional[str] = None
    provides: Optional[str] = None
    maintainer_scripts: Optional[str] = None
    systemd_units: Optional[SystemdUnitsConfig] = None
    conf_files: Optional[str] = None
    triggers_file: Optional[str] = None
    assets: Tuple[Asset, ...] = ()
    manifest_dir: str = "."
    scratch_dir: Optional[str] = None

    def repository_type(self) -> Optional[str]:
        repo = self.repository
        if repo is None:
            return None
        if (
            repo.startswith("git+")
            or repo.endswith(".git")
            or "git@" in repo
            or "github.com" in repo
            or "gitlab.com" in repo
        ):
            return "Git"
        if repo.startswith("cvs+") or "pserver:" in repo or "@cvs." in repo:
            return "Cvs"
        if repo.startswith("hg+") or "hg@" in repo or "/hg." in repo:
            return "Hg"
        if repo.startswith("svn+") or "/svn." in repo:
            return "Svn"
        return None

    @property
    def effective_homepage(self) -> Optional[str]:
        return self.homepage if self.homepage is not None else self.documentation

    @property
    def workspace_dir(self) -> str:
        scratch_dir = self.scratch_dir
        if scratch_dir is None:
            scratch_dir = os.path.join(self.manifest_dir, ".debcontrol", "scratch-dir")
        return os.path.join(scratch_dir, "systemd")


_STRING_KEYS = {
    "version": "version",
    "architecture": "architecture",
    "maintainer": "maintainer",
    "description": "description",
    "priority": "priority",
    "extended-description": "extended_description",
    "homepage": "homepage",
    "documentation": "documentation",
    "repository": "repository",
    "section": "section",
    "depends": "depends",
    "build-depends": "build_depends",
    "conflicts": "conflicts",
    "breaks": "breaks",
    "replaces": "replaces",
    "provides": "provides",
}
_PATH_KEYS = {
    "maintainer-scripts": "maintainer_scripts",
    "triggers-file": "triggers_file",
    "scratch-dir": "scratch_dir",
}
_REQUIRED_KEYS = frozenset(
    {"package", "version", "architecture", "maintainer", "description"}
)
_SYSTEMD_BOOL_KEYS = {
    "enable": "enable",
    "start": "start",
    "restart-after-upgrade": "restart_after_upgrade",
    "stop-on-upgrade": "stop_on_upgrade",
}
KNOWN_KEYS: FrozenSet[str] = frozenset(
    {
        "package",
        "systemd-units",
        "conf-files",
        "assets",
        *_STRING_KEYS,
        *_PATH_KEYS,
    }
)


class PackageConfigParser:
    def __init__(self, manifest_path: str) -> None:
        self.manifest_path = manifest_path
        self.manifest_dir = os.path.dirname(os.path.abspath(manifest_path))

    def _type_error(self, key: str, expected: str) -> "ManifestTypeException":
        return ManifestTypeException(
            f'The value of "{key}" in {self.manifest_path} must be {expected}'
        )

    def _string(self, data: Mapping[str, Any], key: str) -> Optional[str]:
        value = data.get(key)
        if value is None:
            return None
        if not isinstance(value, str):
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                raise self._type_error(
                    key, 'a string (please quote numeric values such as "1.0")'
                )
            raise self._type_error(key, "a string")
        return value

    def _path(self, data: Mapping[str, Any], key: str) -> Optional[str]:
        value = self._string(data, key)
        if value is None:
            return None
        return os.path.join(self.manifest_dir, value)

    def _systemd_units(self, value: Any) -> Optional[SystemdUnitsConfig]:
        if value is None or value is False:
            return None
        if value is True:
            return SystemdUnitsConfig()
        if not isinstance(value, Mapping):
            raise self._type_error("systemd-units", "a boolean or a mapping")
        kwargs = {}
        for key, raw_value in value.items():
            if key == "unit-name":
                if not isinstance(raw_value, str):
                    raise self._type_error("systemd-units.unit-name", "a string")
                kwargs["unit_name"] = raw_value
            elif key in _SYSTEMD_BOOL_KEYS:
                if not isinstance(raw_value, bool):
                    raise self._type_error(f"systemd-units.{key}", "a boolean")
                kwargs[_SYSTEMD_BOOL_KEYS[key]] = raw_value
            else:
                raise ManifestParseException(
                    f'Unknown key "systemd-units.{key}" in {self.manifest_path}'
                )
        return SystemdUnitsConfig(**kwargs)

    def _conf_files(self, value: Any) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, str):
            return value
        if isinstance(value, list) and all(isinstance(v, str) for v in value):
            return "\n".join(value)
        raise self._type_error("conf-files", "a string or a list of strings")

    def _assets(self, value: Any) -> List[AssetSpec]:
        if value is None:
            return []
        if not isinstance(value, list):
            raise self._type_error("assets", "a list")
        specs = []
        for idx, entry in enumerate(value):
            if isinstance(entry, Mapping):
                source = entry.get("source")
                dest = entry.get("dest")
            elif isinstance(entry, list) and len(entry) == 2:
                source, dest = entry
            else:
                raise self._type_error(
                    f"assets[{idx}]",
                    "a mapping with source and dest or a [source, dest] pair",
                )
            if not isinstance(source, str) or not isinstance(dest, str):
                raise self._type_error(
                    f"assets[{idx}]",
                    "a mapping with string values for source and dest",
                )
            try:
                unix_relative_path(dest)
            except ValueError as e:
                raise ManifestParseException(
                    f"The dest of assets[{idx}] in {self.manifest_path} is invalid: {e}"
                ) from e
            specs.append(AssetSpec(os.path.join(self.manifest_dir, source), dest))
        return specs

    def from_yaml_dict(self, data: Any) -> PackageConfig:
        if not isinstance(data, Mapping):
            raise ManifestParseException(
                f"The manifest {self.manifest_path} must be a YAML mapping at the top level"
            )
        unknown_keys = [k for k in data if k not in KNOWN_KEYS]
        if unknown_keys:
            raise ManifestParseException(
                f"Unknown key(s) in {self.manifest_path}: {', '.join(sorted(map(str, unknown_keys)))}"
            )
        missing_keys = sorted(k for k in _REQUIRED_KEYS if data.get(k) is None)
        if missing_keys:
            raise ManifestParseException(
                f"Missing required key(s) in {self.manifest_path}: {', '.join(missing_keys)}"
            )

        name = self._string(data, "package")
        if not PKGNAME_REGEX.fullmatch(name):
            raise ManifestParseException(
                f'The package name "{name}" in {self.manifest_path} is not a valid Debian package name'
            )
        kwargs = {
            attr: value
            for key, attr in _STRING_KEYS.items()
            if (value := self._string(data, key)) is not None
        }
        kwargs.update(
            (attr, value)
            for key, attr in _PATH_KEYS.items()
            if (value := self._path(data, key)) is not None
        )
        version = kwargs["version"]
        if not PKGVERSION_REGEX.fullmatch(version):
            raise ManifestParseException(
                f'The version "{version}" in {self.manifest_path} is not a valid Debian version'
            )

        return PackageConfig(
            name=name,
            systemd_units=self._systemd_units(data.get("systemd-units")),
            conf_files=self._conf_files(data.get("conf-files")),
            assets=tuple(resolve_assets(self._assets(data.get("assets")))),
            manifest_dir=self.manifest_dir,
            **kwargs,
        )

    def _parse_manifest(self, fd: Union[IO[bytes], str]) -> PackageConfig:
        try:
            data = MANIFEST_YAML.load(fd)
        except YAMLError as e:
            msg = str(e).rstrip()
            msg += (
                f"\n\nYou can use `yamllint -d relaxed {escape_shell(self.manifest_path)}` to validate"
                " the YAML syntax."
            )
            raise ManifestParseException(
                f"Could not parse {self.manifest_path} as a YAML document: {msg}"
            ) from e
        return self.from_yaml_dict(data)

    def parse_manifest(
        self,
        *,
        fd: Optional[Union[IO[bytes], str]] = None,
    ) -> PackageConfig:
        if fd is None:
            with open(self.manifest_path, "rb") as fd:
                return self._parse_manifest(fd)
        else:
            return self._parse_manifest(fd)
