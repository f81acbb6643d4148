"""
Mount Points
============
Named HTML targets the monitor renders into.

The registry stands in for the page: a renderer looks its target up by
name and writes the fragment. A name that was never mounted resolves to
None and the render is skipped, mirroring an element that is absent from
the document.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, Optional


@dataclass
class MountPoint:
    name: str
    html: str = ""
    hidden: bool = False


class MountRegistry:
    def __init__(self, names: Iterable[str] = ()) -> None:
        self._mounts: Dict[str, MountPoint] = {}
        for name in names:
            self.mount(name)

    def mount(self, name: str, hidden: bool = False) -> MountPoint:
        point = self._mounts.get(name)
        if point is None:
            point = MountPoint(name=name, hidden=hidden)
            self._mounts[name] = point
        return point

    def unmount(self, name: str) -> None:
        self._mounts.pop(name, None)

    def get(self, name: str) -> Optional[MountPoint]:
        return self._mounts.get(name)

    def html(self, name: str) -> str:
        point = self._mounts.get(name)
        return point.html if point else ""

    def __contains__(self, name: str) -> bool:
        return name in self._mounts
