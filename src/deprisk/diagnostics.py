from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

INEFFECTIVE_EXCLUSION_PATTERN = "INEFFECTIVE_EXCLUSION_PATTERN"
DEPENDENCY_CHAIN_TRUNCATED = "DEPENDENCY_CHAIN_TRUNCATED"


@dataclass(frozen=True)
class Diagnostic:
    """A non-fatal, user-facing finding emitted during analysis."""

    code: str
    message: str
    subject: str
    severity: str = "warning"

    def as_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "subject": self.subject,
            "severity": self.severity,
        }


DiagnosticSink = Callable[[Diagnostic], None]


def log_sink(diagnostic: Diagnostic) -> None:
    level = logging.WARNING if diagnostic.severity == "warning" else logging.INFO
    logger.log(level, "[%s] %s", diagnostic.code, diagnostic.message)


@dataclass
class DiagnosticCollector:
    """Sink that keeps every diagnostic it receives, optionally forwarding them."""

    items: List[Diagnostic] = field(default_factory=list)
    forward: Optional[DiagnosticSink] = None

    def __call__(self, diagnostic: Diagnostic) -> None:
        self.items.append(diagnostic)
        if self.forward is not None:
            self.forward(diagnostic)

    def by_code(self, code: str) -> List[Diagnostic]:
        return [item for item in self.items if item.code == code]

    def __len__(self) -> int:
        return len(self.items)


def resolve_sink(sink: Optional[DiagnosticSink]) -> DiagnosticSink:
    return sink if sink is not None else log_sink
