"""Where blocking collaborator calls run.

The core hands every persistence or lookup call to a :class:`TaskRunner`
and gets the outcome back through callbacks. Implementations must invoke
the callbacks on the thread that owns the core (the GUI thread), never in
the middle of another core operation.
"""
from __future__ import annotations

import logging
import traceback
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

SuccessCallback = Callable[[Any], None]
ErrorCallback   = Callable[[Exception], None]


class TaskRunner(ABC):

    @abstractmethod
    def submit(
        self,
        fn: Callable[..., Any],
        *args: Any,
        on_success: Optional[SuccessCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        ...

    def submit_serial(
        self,
        fn: Callable[..., Any],
        *args: Any,
        on_success: Optional[SuccessCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        """Like :meth:`submit`, but serial calls run one at a time in
        submission order. Used for writes, so the last write wins.

        Runners that run :meth:`submit` calls concurrently must override it.
        """
        self.submit(fn, *args, on_success=on_success, on_error=on_error)


class ImmediateTaskRunner(TaskRunner):
    """Runs the call inline on the calling thread."""

    def submit(self, fn, *args, on_success=None, on_error=None) -> None:
        try:
            result = fn(*args)
        except Exception as exc:
            logger.debug(traceback.format_exc())
            if on_error is None:
                logger.error("Background call %s failed: %s", getattr(fn, "__name__", fn), exc)
                return
            on_error(exc)
            return
        if on_success is not None:
            on_success(result)
