import logging
from typing import Any, Callable, List, Tuple

logger = logging.getLogger(__name__)


class PostCommitEffects:
    """Best-effort work queued during a transaction and attempted after commit.

    Every entry runs in isolation: a failure is logged and the remaining
    entries still run. Nothing here can undo the already-committed change.
    """

    def __init__(self):
        self._effects: List[Tuple[str, Callable[..., Any], tuple, dict]] = []

    def add(self, name: str, fn: Callable[..., Any], *args, **kwargs):
        self._effects.append((name, fn, args, kwargs))

    def extend(self, other: "PostCommitEffects"):
        self._effects.extend(other._effects)
        other._effects = []

    @property
    def names(self) -> List[str]:
        return [name for name, _, _, _ in self._effects]

    def __len__(self):
        return len(self._effects)

    def run(self) -> List[str]:
        failed = []
        effects, self._effects = self._effects, []
        for name, fn, args, kwargs in effects:
            try:
                fn(*args, **kwargs)
            except Exception:
                logger.exception("Post-commit effect '%s' failed", name)
                failed.append(name)
        return failed
