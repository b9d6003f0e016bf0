from typing import Callable, Sequence, List

from debcontrol.assets import Asset
from debcontrol.config import PackageConfig, AUTO_DEPENDS
from debcontrol.listener import Listener

DependencyResolver = Callable[[Sequence[Asset], Listener], Sequence[str]]


def no_auto_dependencies(
    _assets: Sequence[Asset],
    listener: Listener,
) -> Sequence[str]:
    listener.warning(
        f"Automatic dependency detection ({AUTO_DEPENDS}) is not available;"
        f" {AUTO_DEPENDS} will expand to nothing"
    )
    return ()


def compute_depends(
    config: PackageConfig,
    listener: Listener,
    dependency_resolver: DependencyResolver = no_auto_dependencies,
) -> str:
    deps: List[str] = []
    for raw_dep in config.depends.split(","):
        dep = raw_dep.strip()
        if not dep:
            continue
        if dep == AUTO_DEPENDS:
            candidates = [
                d.strip() for d in dependency_resolver(config.assets, listener)
            ]
        else:
            candidates = [dep]
        for candidate in candidates:
            if candidate and candidate not in deps:
                deps.append(candidate)
    return ", ".join(deps)
