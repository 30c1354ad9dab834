"""
Escape sequences written to the terminal.

All sequences are ANSI/VT100-compatible and understood by xterm-style
terminals; terminals that don't support a query simply never answer it.
"""

from __future__ import annotations

ESC = "\x1b"
CSI = ESC + "["
OSC = ESC + "]"
ST = ESC + "\\"
BEL = "\x07"

# Background colour query; answered with OSC 11;rgb:RRRR/GGGG/BBBB ST
REPORT_BACKGROUND = OSC + "11;?" + ST

# Save cursor, move to the far bottom-right, ask for the cursor position,
# restore. The CSI rows;cols R answer is the window size.
REPORT_SIZE = ESC + "7" + CSI + "4095C" + CSI + "4095B" + CSI + "6n" + ESC + "8"

ENABLE_FOCUS = CSI + "?1004h"
DISABLE_FOCUS = CSI + "?1004l"

ENABLE_PASTE = CSI + "?2004h"
DISABLE_PASTE = CSI + "?2004l"

PASTE_START = CSI + "200~"
PASTE_END = CSI + "201~"


__all__ = [
    "ESC",
    "CSI",
    "OSC",
    "ST",
    "BEL",
    "REPORT_BACKGROUND",
    "REPORT_SIZE",
    "ENABLE_FOCUS",
    "DISABLE_FOCUS",
    "ENABLE_PASTE",
    "DISABLE_PASTE",
    "PASTE_START",
    "PASTE_END",
]
