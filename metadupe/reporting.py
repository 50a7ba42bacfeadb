"""Operator-facing messages.

Every message goes through :meth:`Reporter.report` with an explicit
:class:`Severity`. Output is printed with a bracketed tag, and an optional
callback receives the same pair (tests and embedding code use it).
"""
from __future__ import annotations

import sys
from enum import Enum
from typing import Callable, Optional


class Severity(Enum):
    LOG = "LOG"
    SUCCESS = "OK"
    WARNING = "WARN"
    ERROR = "ERROR"


LogCallback = Callable[[Severity, str], None]


class Reporter:
    def __init__(self, log_cb: Optional[LogCallback] = None, quiet: bool = False) -> None:
        self.log_cb = log_cb
        self.quiet = quiet

    def report(self, severity: Severity, message: str) -> None:
        if not self.quiet:
            stream = sys.stderr if severity in (Severity.WARNING, Severity.ERROR) else sys.stdout
            if severity is Severity.LOG:
                print(message, file=stream)
            else:
                print(f"[{severity.value}] {message}", file=stream)
        if not self.log_cb:
            return
        try:
            self.log_cb(severity, message)
        except Exception:
            pass
