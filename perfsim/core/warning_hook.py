"""Promote runtime warnings into request faults.

Once installed, a warning whose category is enabled by the error
reporting configuration raises WarningFault at the warn() call site, so it
reaches the global error handler like any other unexpected fault. Warnings
of any other category are dropped and execution continues.
"""

from __future__ import annotations

import builtins
import logging
import warnings
from typing import Iterable

from perfsim.core.errors import WarningFault

logger = logging.getLogger(__name__)

_installed = False
_enabled_categories: tuple[type[Warning], ...] = ()


def resolve_warning_categories(names: Iterable[str]) -> tuple[type[Warning], ...]:
    """Map builtin warning class names to classes.

    Args:
        names: Names such as "UserWarning" or "RuntimeWarning".

    Returns:
        Tuple of resolved Warning subclasses; unknown names are skipped.
    """

    categories: list[type[Warning]] = []
    for name in names:
        candidate = getattr(builtins, name, None)
        if isinstance(candidate, type) and issubclass(candidate, Warning):
            categories.append(candidate)
        else:
            logger.warning("warning_hook.unknown_category", extra={"category": name})
    return tuple(categories)


def handle_warning(
    message: Warning | str,
    category: type[Warning],
    filename: str,
    lineno: int,
    file=None,
    line: str | None = None,
) -> None:
    """warnings.showwarning replacement.

    Raises:
        WarningFault: If the category is enabled for reporting.
    """

    if not issubclass(category, _enabled_categories):
        return
    raise WarningFault(str(message), category, filename, lineno)


def install_warning_hook(categories: Iterable[type[Warning]]) -> bool:
    """Install the warning hook for the lifetime of the process.

    Only the first call has an effect; the hook is never re-registered or
    removed.

    Args:
        categories: Warning categories promoted to faults.

    Returns:
        True if this call installed the hook, False if it was already installed.
    """

    global _installed, _enabled_categories

    if _installed:
        return False

    _enabled_categories = tuple(categories)
    # Every warning must reach the hook, which then decides to raise or drop.
    warnings.simplefilter("always")
    warnings.showwarning = handle_warning
    _installed = True

    logger.info(
        "warning_hook.installed",
        extra={"categories": [c.__name__ for c in _enabled_categories]},
    )
    return True
