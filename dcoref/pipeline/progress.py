from __future__ import annotations
from typing import Iterable, Literal, Optional, TypeVar, Generator
import sys
from tqdm import tqdm


class ProgressReporter:
    """Reports the progress of a pipeline, or of a pipeline step."""

    def start_(self, total: int):
        """Called before iterating over ``total`` elements."""
        self.total = total
        self.progress = 0

    def update_progress_(self, added_progress: int):
        self.progress += added_progress

    def update_message_(self, message: str):
        pass

    def end_(self):
        """Called once iteration is over."""
        pass

    def get_subreporter(self) -> ProgressReporter:
        """Get a reporter for the steps of this reporter."""
        return NoopProgressReporter()


class NoopProgressReporter(ProgressReporter):
    pass


class TQDMSubProgressReporter(ProgressReporter):
    """Reports a step progress as a postfix of its parent bar."""

    def __init__(self, reporter: TQDMProgressReporter) -> None:
        self.reporter = reporter
        self.message = ""
        self.total = 0
        self.progress = 0

    def update_progress_(self, added_progress: int):
        super().update_progress_(added_progress)
        self._refresh()

    def update_message_(self, message: str):
        self.message = message
        self._refresh()

    def _refresh(self):
        if self.reporter.tqdm is None:
            return
        self.reporter.tqdm.set_postfix(
            step=f"({self.progress}/{self.total})", message=self.message
        )


class TQDMProgressReporter(ProgressReporter):
    def __init__(self) -> None:
        self.tqdm: Optional[tqdm] = None

    def start_(self, total: int):
        super().start_(total)
        self.tqdm = tqdm(total=total)

    def update_progress_(self, added_progress: int):
        super().update_progress_(added_progress)
        assert not self.tqdm is None
        self.tqdm.update(added_progress)

    def update_message_(self, message: str):
        assert not self.tqdm is None
        self.tqdm.set_description_str(message)

    def end_(self):
        if not self.tqdm is None:
            self.tqdm.close()

    def get_subreporter(self) -> ProgressReporter:
        return TQDMSubProgressReporter(self)


T = TypeVar("T")


def progress_(
    progress_reporter: ProgressReporter,
    it: Iterable[T],
    total: Optional[int] = None,
) -> Generator[T, None, None]:
    if total is None:
        total = len(it)  # type: ignore
    progress_reporter.start_(total)
    for elt in it:
        yield elt
        progress_reporter.update_progress_(1)
    progress_reporter.end_()


def get_progress_reporter(name: Optional[Literal["tqdm"]]) -> ProgressReporter:
    if name is None:
        return NoopProgressReporter()
    if name == "tqdm":
        return TQDMProgressReporter()
    print(f"[warning] unknown progress reporter: {name}", file=sys.stderr)
    return NoopProgressReporter()
