"""Base class for keyboard layout sources (abstraction over the windowing system)."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class LayoutSourceError(RuntimeError):
    """Raised when the layout source cannot talk to the windowing system."""


class LayoutEventKind(Enum):
    NAMES_CHANGED = "names_changed"
    GROUP_CHANGED = "group_changed"


@dataclass(frozen=True)
class LayoutEvent:
    """
    Notification from a layout source.

    NAMES_CHANGED means the keyboard mapping changed and group names must be
    read again; ``serial`` identifies the request that caused it.
    GROUP_CHANGED carries the new locked group in ``group``.
    """

    kind: LayoutEventKind
    serial: int = 0
    group: Optional[int] = None


@dataclass
class LayoutSnapshot:
    current_group: int
    names: dict[int, Optional[bytes]] = field(default_factory=dict)


class LayoutSource(ABC):
    """
    Abstract source of keyboard layout state.

    Implementations supply raw group names (bytes, not necessarily valid
    UTF-8) and group change notifications.
    """

    @abstractmethod
    def read_layout(self) -> LayoutSnapshot:
        """
        Read the current group and all group names.

        Returns:
            Snapshot of the keyboard layout state

        Raises:
            LayoutSourceError: If the state cannot be read
        """

    @abstractmethod
    def poll_events(self) -> list[LayoutEvent]:
        """
        Return the layout events received since the last call, without blocking.

        Raises:
            LayoutSourceError: If events cannot be read
        """

    def close(self) -> None:
        """Release resources held by the source."""

    def __enter__(self) -> "LayoutSource":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
