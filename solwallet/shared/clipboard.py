"""Clipboard access for copying addresses and transaction signatures."""

from __future__ import annotations

import base64
import logging
import os
import sys
from typing import Any, TextIO

import pyperclip

logger = logging.getLogger(__name__)


def _write_control_sequence(sequence: str, stream: TextIO | None = None) -> bool:
    candidates: list[TextIO] = []
    if stream is not None:
        candidates.append(stream)

    # `sys.__stdout__` is the real terminal even while a TUI owns `sys.stdout`.
    if sys.__stdout__ is not None:
        candidates.append(sys.__stdout__)
    candidates.append(sys.stdout)

    for output in candidates:
        try:
            output.write(sequence)
            output.flush()
            return True
        except (OSError, ValueError) as e:
            logger.debug("Clipboard escape write failed: %s", e)

    return False


def copy_with_osc52(text: str, stream: TextIO | None = None) -> bool:
    if not text:
        return False

    payload = base64.b64encode(text.encode("utf-8")).decode("ascii")
    osc = f"\x1b]52;c;{payload}\x07"

    # tmux only forwards OSC 52 inside a DCS passthrough.
    if os.getenv("TMUX"):
        osc = f"\x1bPtmux;\x1b{osc}\x1b\\"

    return _write_control_sequence(osc, stream=stream)


def copy_with_pyperclip(text: str) -> bool:
    if not text:
        return False

    try:
        pyperclip.copy(text)
    except pyperclip.PyperclipException as e:
        logger.debug("pyperclip copy failed: %s", e)
        return False

    try:
        return pyperclip.paste() == text
    except pyperclip.PyperclipException:
        # Some environments allow copy but not paste.
        return True


def copy_text(text: str, prefer_osc52: bool = False) -> dict[str, Any]:
    if prefer_osc52:
        methods = (("osc52", copy_with_osc52), ("pyperclip", copy_with_pyperclip))
    else:
        methods = (("pyperclip", copy_with_pyperclip), ("osc52", copy_with_osc52))

    for method_name, method in methods:
        if method(text):
            return {"success": True, "method": method_name}

    return {"success": False, "method": None}
