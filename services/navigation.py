"""
Navigation Module

In-memory navigation sink: a history stack of (screen, params) entries.
Used by the command-line runner and by tests in place of a real UI.
"""

from typing import Any, Dict, List, Optional, Tuple

from data.models import Screen
from utils.logger import get_logger

logger = get_logger(__name__)

HistoryEntry = Tuple[Screen, Dict[str, Any]]


class Navigator:
    """History-stack implementation of the NavigationSink protocol."""

    def __init__(self, initial: Optional[Screen] = None):
        self._history: List[HistoryEntry] = []
        if initial is not None:
            self._history.append((initial, {}))

    @property
    def history(self) -> List[HistoryEntry]:
        return list(self._history)

    @property
    def current(self) -> Optional[Screen]:
        return self._history[-1][0] if self._history else None

    @property
    def current_params(self) -> Dict[str, Any]:
        return dict(self._history[-1][1]) if self._history else {}

    def reset(self, screen: Screen) -> None:
        self._history = [(screen, {})]
        logger.info(f"Navigation reset to {screen.value}")

    def navigate(self, screen: Screen, params: Optional[Dict[str, Any]] = None) -> None:
        self._history.append((screen, dict(params or {})))
        logger.info(f"Navigated to {screen.value}")

    def go_back(self) -> bool:
        if len(self._history) <= 1:
            return False
        screen, _ = self._history.pop()
        logger.info(f"Left {screen.value}")
        return True
