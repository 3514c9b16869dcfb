from typing import Any, Callable, Optional


class Scheduler:
    """Single pending timer.

    `schedule` replaces whatever was pending; `cancel` drops it. The player
    only ever needs one outstanding callback.
    """

    def schedule(self, delay_ms: int, fn: Callable[[], None]) -> None:
        raise NotImplementedError

    def cancel(self) -> None:
        raise NotImplementedError

    @property
    def pending(self) -> bool:
        raise NotImplementedError


class TkScheduler(Scheduler):
    """Runs callbacks on the Tk main loop (widget.after)."""

    def __init__(self, widget):
        self.widget = widget
        self._after_id: Optional[Any] = None

    def schedule(self, delay_ms: int, fn: Callable[[], None]) -> None:
        self.cancel()

        def _fire():
            self._after_id = None
            fn()

        self._after_id = self.widget.after(max(0, int(delay_ms)), _fire)

    def cancel(self) -> None:
        if self._after_id is not None:
            try:
                self.widget.after_cancel(self._after_id)
            finally:
                self._after_id = None

    @property
    def pending(self) -> bool:
        return self._after_id is not None
