"""Tracks the active layout group and the short labels of all groups."""

import logging
import threading
from typing import Callable, Mapping, Optional

from .config import DEFAULT_CONFIG
from .label import EMPTY_LABEL, ShortLabel, build_short_label
from .utf8 import BytesLike

logger = logging.getLogger("xkbmon")

# XkbNumKbdGroups
MAX_GROUPS = 4


class LayoutTracker:
    """Holds the current group index and a label per group slot."""

    def __init__(
        self,
        emit: Optional[Callable[[bytes], None]] = None,
        fallback_format: str = DEFAULT_CONFIG["fallback_format"],
    ):
        """
        Initialize tracker.

        Args:
            emit: Called with the label bytes on every group change
            fallback_format: Text for groups without a label, formatted
                with ``index``
        """
        self.emit = emit
        self.fallback_format = fallback_format

        self._labels: list[ShortLabel] = [EMPTY_LABEL] * MAX_GROUPS
        self._current_group = 0
        self._lock = threading.Lock()

    @property
    def current_group(self) -> int:
        with self._lock:
            return self._current_group

    def label_for(self, index: int) -> ShortLabel:
        """Return the label of a group slot (empty for unused or unknown slots)."""
        with self._lock:
            if 0 <= index < MAX_GROUPS:
                return self._labels[index]
            return EMPTY_LABEL

    def on_layout_names_changed(self, names: Mapping[int, Optional[BytesLike]]) -> None:
        """
        Recompute all labels from raw group names.

        Slots missing from ``names`` or mapped to None become unused.

        Args:
            names: Group index to raw name bytes
        """
        labels = [EMPTY_LABEL] * MAX_GROUPS
        for index, name in names.items():
            if not 0 <= index < MAX_GROUPS:
                logger.warning(f"Ignoring name for out-of-range group {index}")
                continue
            labels[index] = build_short_label(name)

        with self._lock:
            self._labels = labels

        logger.debug(
            "Group labels: " + ", ".join(f"{i}={label.text!r}" for i, label in enumerate(labels))
        )

    def on_group_index_changed(self, index: int) -> bytes:
        """
        Switch to a new group and emit its label.

        Label bytes are passed through as the layout name had them; groups
        without a label get the UTF-8 encoded fallback text.

        Args:
            index: New group index

        Returns:
            Label bytes that were emitted

        Raises:
            ValueError: If index is negative
        """
        if index < 0:
            raise ValueError(f"Group index must be non-negative, got {index}")

        with self._lock:
            self._current_group = index
            encoded = self._display_bytes(index)

        logger.debug(f"Group changed to {index}: {encoded!r}")
        if self.emit is not None:
            self.emit(encoded)
        return encoded

    def current_text(self) -> str:
        with self._lock:
            return self._display_bytes(self._current_group).decode("utf-8")

    def _display_bytes(self, index: int) -> bytes:
        label = self._labels[index] if index < MAX_GROUPS else EMPTY_LABEL
        if label:
            return label.encoded
        return self.fallback_format.format(index=index).encode("utf-8")
