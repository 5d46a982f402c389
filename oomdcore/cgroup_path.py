"""Paths to cgroups inside a mounted cgroup filesystem."""

from __future__ import annotations

import glob
import os


def _split_parts(path: str) -> list[str]:
    """Split a path on '/' and drop empty components."""
    return [part for part in path.split("/") if part]


class CgroupPath:
    """A cgroup addressed as a cgroup filesystem root plus relative parts."""

    __slots__ = ("_cgroup_fs", "_parts")

    def __init__(self, cgroup_fs: str, cgroup_path: str) -> None:
        if len(cgroup_fs) > 1 and cgroup_fs.endswith("/"):
            cgroup_fs = cgroup_fs[:-1]
        self._cgroup_fs = cgroup_fs
        self._parts: tuple[str, ...] = tuple(_split_parts(cgroup_path))

    @classmethod
    def _from_parts(cls, cgroup_fs: str, parts: tuple[str, ...]) -> CgroupPath:
        path = cls.__new__(cls)
        path._cgroup_fs = cgroup_fs
        path._parts = parts
        return path

    def absolute_path(self) -> str:
        """The cgroup fs joined with the relative path."""
        relative = self.relative_path()
        if relative:
            return f"{self._cgroup_fs}/{relative}"
        return self._cgroup_fs

    def relative_path(self) -> str:
        """The cgroup path without the cgroup fs."""
        return "/".join(self._parts)

    def relative_path_parts(self) -> list[str]:
        return list(self._parts)

    def cgroup_fs(self) -> str:
        return self._cgroup_fs

    def is_root(self) -> bool:
        """Whether this path is the root cgroup."""
        return not self._parts

    def get_parent(self) -> CgroupPath:
        if self.is_root():
            raise ValueError("Cannot get parent of root")
        return self._from_parts(self._cgroup_fs, self._parts[:-1])

    def get_child(self, path: str) -> CgroupPath:
        return self._from_parts(self._cgroup_fs, self._parts + tuple(_split_parts(path)))

    def resolve_wildcard(self) -> list[CgroupPath]:
        """Expand glob patterns to existing directories on the same cgroup fs."""
        matches = sorted(
            p for p in glob.glob(self.absolute_path()) if os.path.isdir(p)
        )
        fs = self._cgroup_fs
        resolved = []
        for match in matches:
            match = match.rstrip("/") or match
            if not match.startswith(fs):
                continue
            if len(match) == len(fs):
                resolved.append(CgroupPath(fs, ""))
            elif match[len(fs)] == "/":
                resolved.append(CgroupPath(fs, match[len(fs) + 1 :]))
        return resolved

    def has_descendant_with_prefix_matching(self, pattern: CgroupPath) -> bool:
        """True if this path and the pattern agree on their common prefix.

        A pattern component of exactly "*" matches any single component.
        """
        return all(
            mine == theirs or theirs == "*"
            for mine, theirs in zip(self._parts, pattern._parts)
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CgroupPath):
            return NotImplemented
        return self.absolute_path() == other.absolute_path()

    def __hash__(self) -> int:
        return hash(self.absolute_path())

    def __repr__(self) -> str:
        return f"CgroupPath({self._cgroup_fs!r}, {self.relative_path()!r})"

    def __str__(self) -> str:
        return self.absolute_path()