"""Raw terminal key input.

:class:`KeyReader` puts stdin in cbreak mode and feeds decoded key names
into a queue from a background thread, so the event loop only ever waits
on that queue.
"""

from __future__ import annotations

import logging
import os
import queue
import select
import sys
import termios
import threading
import tty

from .messages import KeyPress

log = logging.getLogger(__name__)

ESCAPE_SEQUENCES = {
    "\x1b[A": "up",
    "\x1b[B": "down",
    "\x1b[C": "right",
    "\x1b[D": "left",
    "\x1bOA": "up",
    "\x1bOB": "down",
    "\x1bOC": "right",
    "\x1bOD": "left",
    "\x1b[H": "home",
    "\x1b[F": "end",
    "\x1b[3~": "delete",
}

CONTROL_KEYS = {
    "\r": "enter",
    "\n": "enter",
    "\x7f": "backspace",
    "\x08": "backspace",
    "\x15": "ctrl+u",
    "\x17": "ctrl+w",
    "\x03": "ctrl+c",
    "\t": "tab",
    " ": "space",
}


def decode_keys(data: bytes) -> list[str]:
    """Translate raw terminal bytes into key names, in order."""
    text = data.decode("utf-8", errors="ignore")
    keys: list[str] = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "\x1b":
            seq = next((s for s in ESCAPE_SEQUENCES if text.startswith(s, i)), None)
            if seq is not None:
                keys.append(ESCAPE_SEQUENCES[seq])
                i += len(seq)
            elif text.startswith("\x1b[", i):
                # unknown CSI sequence: skip through its final byte
                j = i + 2
                while j < len(text) and not ("@" <= text[j] <= "~"):
                    j += 1
                i = j + 1
            else:
                keys.append("esc")
                i += 1
            continue
        i += 1
        if ch in CONTROL_KEYS:
            keys.append(CONTROL_KEYS[ch])
        elif ch.isprintable():
            keys.append(ch)
    return keys


class KeyReader:
    """Context manager reading key presses into ``sink`` while active.

    Ctrl+C still raises ``KeyboardInterrupt`` in the main thread: cbreak
    mode keeps terminal signals enabled.
    """

    def __init__(self, sink: "queue.Queue[object]"):
        self.sink = sink
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._old_settings = None

    @property
    def active(self) -> bool:
        return self._thread is not None

    def __enter__(self):
        fd = sys.stdin.fileno()
        if not os.isatty(fd):
            return self
        try:
            self._old_settings = termios.tcgetattr(fd)
            tty.setcbreak(fd)
        except termios.error:
            self._old_settings = None
            return self

        self._stop.clear()
        self._thread = threading.Thread(target=self._listen, name="repolyzer-keys", daemon=True)
        self._thread.start()
        return self

    def __exit__(self, *exc):
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=0.5)
            self._thread = None
        if self._old_settings is not None:
            try:
                termios.tcsetattr(sys.stdin.fileno(), termios.TCSADRAIN, self._old_settings)
            except termios.error:
                log.warning("could not restore terminal settings")
        self._old_settings = None

    def _listen(self):
        fd = sys.stdin.fileno()
        while not self._stop.is_set():
            try:
                rlist, _, _ = select.select([fd], [], [], 0.05)
                if not rlist:
                    continue
                data = os.read(fd, 64)
            except (OSError, ValueError):
                break
            if not data:
                break
            for key in decode_keys(data):
                self.sink.put(KeyPress(key))
