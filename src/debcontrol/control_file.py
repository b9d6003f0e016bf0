import textwrap
from typing import List, Optional, Tuple, Sequence

from debcontrol.config import PackageConfig
from debcontrol.dependencies import (
    DependencyResolver,
    compute_depends,
    no_auto_dependencies,
)
from debcontrol.listener import Listener

STANDARDS_VERSION = "3.9.4"
DESCRIPTION_WRAP_WIDTH = 79


def wrap_description(
    text: str,
    width: int = DESCRIPTION_WRAP_WIDTH,
    *,
    mark_empty_lines: bool = True,
) -> List[str]:
    """Word-wrap a (possibly multi-line) description

    Lines are wrapped at whitespace so no line exceeds `width` characters
    unless it contains a single word longer than that.  Existing line breaks
    are kept.  Empty lines become "." as required for the extended
    description in the control file, or are dropped when `mark_empty_lines`
    is False.
    """
    lines = []
    for line in text.strip("\n").split("\n"):
        if not line.strip():
            if mark_empty_lines:
                lines.append(".")
            continue
        wrapped = textwrap.wrap(
            line,
            width=width,
            break_long_words=False,
            break_on_hyphens=False,
        )
        lines.extend(wrapped or [line])
    return lines


def installed_size_kib(config: PackageConfig) -> int:
    return (
        sum(a.source_size for a in config.assets if a.source_size is not None) // 1024
    )


def _vcs_fields(config: PackageConfig) -> Sequence[Tuple[str, Optional[str]]]:
    repo = config.repository
    if repo is None:
        return []
    fields: List[Tuple[str, Optional[str]]] = [
        ("Vcs-Browser", repo if repo.startswith("http") else None),
    ]
    kind = config.repository_type()
    if kind is not None:
        fields.append((f"Vcs-{kind}", repo))
    return fields


def control_fields(
    config: PackageConfig,
    listener: Listener,
    dependency_resolver: DependencyResolver = no_auto_dependencies,
) -> List[Tuple[str, Optional[str]]]:
    """All single-line fields of the control file in emission order

    Fields with a None value are not emitted.
    """
    return [
        ("Package", config.name),
        ("Version", config.version),
        ("Architecture", config.architecture),
        *_vcs_fields(config),
        ("Homepage", config.effective_homepage),
        ("Section", config.section),
        ("Priority", config.priority),
        ("Standards-Version", STANDARDS_VERSION),
        ("Maintainer", config.maintainer),
        ("Installed-Size", str(installed_size_kib(config))),
        ("Depends", compute_depends(config, listener, dependency_resolver)),
        ("Build-Depends", config.build_depends),
        ("Conflicts", config.conflicts),
        ("Breaks", config.breaks),
        ("Replaces", config.replaces),
        ("Provides", config.provides),
    ]


def generate_control(
    config: PackageConfig,
    listener: Listener,
    dependency_resolver: DependencyResolver = no_auto_dependencies,
) -> bytes:
    lines = [
        f"{field}: {value}\n"
        for field, value in control_fields(config, listener, dependency_resolver)
        if value is not None
    ]

    lines.append("Description:")
    description_lines = wrap_description(config.description, mark_empty_lines=False)
    if not description_lines:
        lines.append("\n")
    if config.extended_description is not None:
        description_lines.extend(wrap_description(config.extended_description))
    lines.extend(f" {line}\n" for line in description_lines)
    lines.append("\n")

    return "".join(lines).encode("utf-8")
