"""User-facing notices.

Anything that accepts a Notice can act as the notification sink; callers
pass one in explicitly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notice:
    """A message for the user."""

    title: str
    description: str
    variant: str = "default"  # "default" or "destructive"


Notifier = Callable[[Notice], None]


def log_notice(notice: Notice) -> None:
    """Default sink: write the notice to the log."""
    level = logging.WARNING if notice.variant == "destructive" else logging.INFO
    logger.log(level, "%s: %s", notice.title, notice.description)
