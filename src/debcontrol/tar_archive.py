import dataclasses
import io
import tarfile
from typing import List, Iterator, Sequence

METADATA_MODE = 0o644
SCRIPT_MODE = 0o755
_ALLOWED_MODES = frozenset({METADATA_MODE, SCRIPT_MODE})


@dataclasses.dataclass(slots=True, frozen=True)
class ControlArchiveMember:
    name: str
    content: bytes
    mode: int

    def create_tar_info(self, tar_fd: tarfile.TarFile, mtime: int) -> tarfile.TarInfo:
        tar_info = tar_fd.tarinfo(self.name)
        tar_info.size = len(self.content)
        tar_info.type = tarfile.REGTYPE
        tar_info.mode = self.mode
        tar_info.uname = "root"
        tar_info.uid = 0
        tar_info.gname = "root"
        tar_info.gid = 0
        tar_info.mtime = mtime
        return tar_info


class ControlArchive:
    """Ordered collection of the members of a control.tar

    All members share the same mtime so the archive is reproducible for a
    given timestamp and insertion order.
    """

    def __init__(self, mtime: int) -> None:
        self.mtime = mtime
        self._members: List[ControlArchiveMember] = []

    def add_file(self, name: str, content: bytes, mode: int) -> None:
        if mode not in _ALLOWED_MODES:
            raise ValueError(
                f"Unsupported mode {oct(mode)} for {name}."
                " Control archive members must have mode 0644 or 0755"
            )
        if name in self:
            raise ValueError(
                f"The control archive already contains a member named {name}"
            )
        self._members.append(ControlArchiveMember(name, bytes(content), mode))

    @property
    def members(self) -> Sequence[ControlArchiveMember]:
        return tuple(self._members)

    @property
    def member_names(self) -> Sequence[str]:
        return tuple(m.name for m in self._members)

    def __iter__(self) -> Iterator[ControlArchiveMember]:
        return iter(self.members)

    def __len__(self) -> int:
        return len(self._members)

    def __getitem__(self, name: str) -> ControlArchiveMember:
        for member in self._members:
            if member.name == name:
                return member
        raise KeyError(name)

    def __contains__(self, name: object) -> bool:
        return any(m.name == name for m in self._members)

    def to_tar_bytes(self) -> bytes:
        buffer = io.BytesIO()
        with tarfile.open(
            mode="w",
            fileobj=buffer,
            format=tarfile.GNU_FORMAT,
            errorlevel=1,
        ) as tar_fd:
            for member in self._members:
                tar_info = member.create_tar_info(tar_fd, self.mtime)
                tar_fd.addfile(tar_info, fileobj=io.BytesIO(member.content))
        return buffer.getvalue()
