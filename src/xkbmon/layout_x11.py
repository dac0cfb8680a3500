"""X11 implementation of the layout source, using the XKB extension of libX11."""

import ctypes
import ctypes.util
import logging
from typing import Optional

from .layout_base import (
    LayoutEvent,
    LayoutEventKind,
    LayoutSnapshot,
    LayoutSource,
    LayoutSourceError,
)

logger = logging.getLogger("xkbmon")

# Xlib / XKB constants
Success = 0
XkbUseCoreKbd = 0x0100
XkbNumKbdGroups = 4
XkbNumVirtualMods = 16
XkbNumIndicators = 32

# XKB event types
XkbMapNotify = 1
XkbStateNotify = 2

# Event details
XkbKeySymsMask = 1 << 1
XkbGroupStateMask = 1 << 4
XkbGroupBaseMask = 1 << 5
XkbGroupLatchMask = 1 << 6
XkbGroupLockMask = 1 << 7

XkbGroupNamesMask = 1 << 12

MAP_NOTIFY_DETAILS = XkbKeySymsMask
STATE_NOTIFY_DETAILS = XkbGroupStateMask | XkbGroupBaseMask | XkbGroupLatchMask | XkbGroupLockMask

# XkbOpenDisplay reason codes
OPEN_DISPLAY_REASONS: dict[int, str] = {
    1: "incompatible XKB library version",
    2: "XKB extension not present on server",
    3: "cannot open display",
    4: "incompatible XKB server version",
}


# --- Structures ---
class XkbStateRec(ctypes.Structure):
    _fields_ = [
        ("group", ctypes.c_ubyte),
        ("locked_group", ctypes.c_ubyte),
        ("base_group", ctypes.c_ushort),
        ("latched_group", ctypes.c_ushort),
        ("mods", ctypes.c_ubyte),
        ("base_mods", ctypes.c_ubyte),
        ("latched_mods", ctypes.c_ubyte),
        ("locked_mods", ctypes.c_ubyte),
        ("compat_state", ctypes.c_ubyte),
        ("grab_mods", ctypes.c_ubyte),
        ("compat_grab_mods", ctypes.c_ubyte),
        ("lookup_mods", ctypes.c_ubyte),
        ("compat_lookup_mods", ctypes.c_ubyte),
        ("ptr_buttons", ctypes.c_ushort),
    ]


class XkbNamesRec(ctypes.Structure):
    # Leading part only; the record is allocated and freed by libX11
    _fields_ = [
        ("keycodes", ctypes.c_ulong),
        ("geometry", ctypes.c_ulong),
        ("symbols", ctypes.c_ulong),
        ("types", ctypes.c_ulong),
        ("compat", ctypes.c_ulong),
        ("vmods", ctypes.c_ulong * XkbNumVirtualMods),
        ("indicators", ctypes.c_ulong * XkbNumIndicators),
        ("groups", ctypes.c_ulong * XkbNumKbdGroups),
    ]


class XkbDescRec(ctypes.Structure):
    _fields_ = [
        ("dpy", ctypes.c_void_p),
        ("flags", ctypes.c_ushort),
        ("device_spec", ctypes.c_ushort),
        ("min_key_code", ctypes.c_ubyte),
        ("max_key_code", ctypes.c_ubyte),
        ("ctrls", ctypes.c_void_p),
        ("server", ctypes.c_void_p),
        ("map", ctypes.c_void_p),
        ("indicators", ctypes.c_void_p),
        ("names", ctypes.POINTER(XkbNamesRec)),
        ("compat", ctypes.c_void_p),
        ("geom", ctypes.c_void_p),
    ]


class XkbAnyEvent(ctypes.Structure):
    _fields_ = [
        ("type", ctypes.c_int),
        ("serial", ctypes.c_ulong),
        ("send_event", ctypes.c_int),
        ("display", ctypes.c_void_p),
        ("time", ctypes.c_ulong),
        ("xkb_type", ctypes.c_int),
        ("device", ctypes.c_uint),
    ]


class XkbStateNotifyEvent(ctypes.Structure):
    _fields_ = XkbAnyEvent._fields_ + [
        ("changed", ctypes.c_uint),
        ("group", ctypes.c_int),
        ("base_group", ctypes.c_int),
        ("latched_group", ctypes.c_int),
        ("locked_group", ctypes.c_int),
    ]


class XEvent(ctypes.Union):
    _fields_ = [
        ("type", ctypes.c_int),
        ("xkb_any", XkbAnyEvent),
        ("xkb_state", XkbStateNotifyEvent),
        ("pad", ctypes.c_long * 24),
    ]


_libx11: Optional[ctypes.CDLL] = None


def load_libx11() -> ctypes.CDLL:
    """
    Load libX11 and declare the signatures used here.

    Returns:
        Loaded library

    Raises:
        LayoutSourceError: If libX11 cannot be found or loaded
    """
    global _libx11
    if _libx11 is not None:
        return _libx11

    path = ctypes.util.find_library("X11")
    if not path:
        raise LayoutSourceError("libX11 not found")
    try:
        lib = ctypes.CDLL(path)
    except OSError as e:
        raise LayoutSourceError(f"Failed to load {path}: {e}") from e

    int_p = ctypes.POINTER(ctypes.c_int)

    lib.XkbOpenDisplay.argtypes = [ctypes.c_char_p, int_p, int_p, int_p, int_p, int_p]
    lib.XkbOpenDisplay.restype = ctypes.c_void_p

    lib.XCloseDisplay.argtypes = [ctypes.c_void_p]
    lib.XCloseDisplay.restype = ctypes.c_int

    lib.XkbSelectEventDetails.argtypes = [
        ctypes.c_void_p,
        ctypes.c_uint,
        ctypes.c_uint,
        ctypes.c_ulong,
        ctypes.c_ulong,
    ]
    lib.XkbSelectEventDetails.restype = ctypes.c_int

    lib.XkbGetState.argtypes = [ctypes.c_void_p, ctypes.c_uint, ctypes.POINTER(XkbStateRec)]
    lib.XkbGetState.restype = ctypes.c_int

    lib.XkbAllocKeyboard.argtypes = []
    lib.XkbAllocKeyboard.restype = ctypes.POINTER(XkbDescRec)

    lib.XkbGetNames.argtypes = [ctypes.c_void_p, ctypes.c_uint, ctypes.POINTER(XkbDescRec)]
    lib.XkbGetNames.restype = ctypes.c_int

    lib.XkbFreeKeyboard.argtypes = [ctypes.POINTER(XkbDescRec), ctypes.c_uint, ctypes.c_int]
    lib.XkbFreeKeyboard.restype = None

    # c_void_p rather than c_char_p so the string can be handed back to XFree
    lib.XGetAtomName.argtypes = [ctypes.c_void_p, ctypes.c_ulong]
    lib.XGetAtomName.restype = ctypes.c_void_p

    lib.XFree.argtypes = [ctypes.c_void_p]
    lib.XFree.restype = ctypes.c_int

    lib.XPending.argtypes = [ctypes.c_void_p]
    lib.XPending.restype = ctypes.c_int

    lib.XNextEvent.argtypes = [ctypes.c_void_p, ctypes.POINTER(XEvent)]
    lib.XNextEvent.restype = ctypes.c_int

    lib.XFilterEvent.argtypes = [ctypes.POINTER(XEvent), ctypes.c_ulong]
    lib.XFilterEvent.restype = ctypes.c_int

    _libx11 = lib
    return lib


class X11LayoutSource(LayoutSource):
    """Layout source reading XKB group state and names from an X server."""

    def __init__(self, display: Optional[str] = None):
        """
        Open the display and subscribe to XKB map and state notifications.

        Args:
            display: Display name (e.g. ":0"); None uses $DISPLAY

        Raises:
            LayoutSourceError: If the display cannot be opened or the event
                mask cannot be set
        """
        self._lib = load_libx11()
        self._dpy: Optional[int] = None

        event_code = ctypes.c_int(0)
        reason = ctypes.c_int(0)
        name = display.encode("utf-8") if display else None
        dpy = self._lib.XkbOpenDisplay(
            name, ctypes.byref(event_code), None, None, None, ctypes.byref(reason)
        )
        if not dpy:
            detail = OPEN_DISPLAY_REASONS.get(reason.value, f"reason {reason.value}")
            raise LayoutSourceError(f"Failed to connect to X server: {detail}")

        self._dpy = dpy
        self._xkb_event_code = event_code.value
        logger.debug(f"Opened display {display or '$DISPLAY'}, XKB event code {self._xkb_event_code}")

        try:
            self._select_events()
        except LayoutSourceError:
            self.close()
            raise

    def _select_events(self) -> None:
        for event_type, details in (
            (XkbMapNotify, MAP_NOTIFY_DETAILS),
            (XkbStateNotify, STATE_NOTIFY_DETAILS),
        ):
            if not self._lib.XkbSelectEventDetails(
                self._dpy, XkbUseCoreKbd, event_type, details, details
            ):
                raise LayoutSourceError("Failed to set event mask")

    def _require_display(self) -> int:
        if not self._dpy:
            raise LayoutSourceError("Display is closed")
        return self._dpy

    def read_layout(self) -> LayoutSnapshot:
        """
        Read the locked group and the group names.

        Names are read up to the first unused group slot.
        """
        dpy = self._require_display()

        state = XkbStateRec()
        if self._lib.XkbGetState(dpy, XkbUseCoreKbd, ctypes.byref(state)) != Success:
            raise LayoutSourceError("Failed to obtain keyboard state")

        desc = self._lib.XkbAllocKeyboard()
        if not desc:
            raise LayoutSourceError("Failed to allocate a keyboard description")

        try:
            if self._lib.XkbGetNames(dpy, XkbGroupNamesMask, desc) != Success:
                raise LayoutSourceError("Failed to obtain group names")

            names: dict[int, Optional[bytes]] = {}
            names_rec = desc.contents.names
            if names_rec:
                for i in range(XkbNumKbdGroups):
                    atom = names_rec.contents.groups[i]
                    if atom == 0:
                        break
                    names[i] = self._atom_name(atom)
        finally:
            self._lib.XkbFreeKeyboard(desc, 0, True)

        logger.debug(f"Layout: locked group {state.locked_group}, names {names}")
        return LayoutSnapshot(current_group=state.locked_group, names=names)

    def _atom_name(self, atom: int) -> Optional[bytes]:
        ptr = self._lib.XGetAtomName(self._dpy, atom)
        if not ptr:
            logger.warning(f"XGetAtomName returned NULL for atom {atom}")
            return None
        try:
            return ctypes.string_at(ptr)
        finally:
            self._lib.XFree(ptr)

    def poll_events(self) -> list[LayoutEvent]:
        dpy = self._require_display()

        events: list[LayoutEvent] = []
        xevent = XEvent()
        while self._lib.XPending(dpy) > 0:
            self._lib.XNextEvent(dpy, ctypes.byref(xevent))
            if self._lib.XFilterEvent(ctypes.byref(xevent), 0):
                continue
            if xevent.type != self._xkb_event_code:
                continue

            xkb_type = xevent.xkb_any.xkb_type
            if xkb_type == XkbMapNotify:
                events.append(
                    LayoutEvent(LayoutEventKind.NAMES_CHANGED, serial=xevent.xkb_any.serial)
                )
            elif xkb_type == XkbStateNotify:
                events.append(
                    LayoutEvent(
                        LayoutEventKind.GROUP_CHANGED,
                        serial=xevent.xkb_state.serial,
                        group=xevent.xkb_state.locked_group,
                    )
                )
        return events

    def close(self) -> None:
        if self._dpy:
            self._lib.XCloseDisplay(self._dpy)
            self._dpy = None
            logger.debug("Display closed")
