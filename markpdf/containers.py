from __future__ import annotations

from dataclasses import dataclass, field

from .canvas import Canvas
from .errors import ContainerStackError
from .nodes import ListKind
from .styles import Style

MAX_DEPTH = 256


@dataclass
class ContainerFrame:
    style: Style
    list_kind: ListKind = ListKind.NONE
    left_margin: float = 0.0
    content_left_margin: float = 0.0
    item_number: int = 0
    counter_backup: int = 0
    first_paragraph: bool = True
    is_header: bool = False
    is_cell: bool = False
    destination: str | int = ""
    cell_text: list[str] = field(default_factory=list)
    cell_style: Style | None = None
    saved_left_margin: float = 0.0

    @property
    def effective_content_margin(self) -> float:
        return self.content_left_margin or self.left_margin


class ContainerStack:
    """Nested formatting contexts; the root frame is always present."""

    def __init__(self, canvas: Canvas, root_style: Style, *, max_depth: int = MAX_DEPTH) -> None:
        self.canvas = canvas
        self.max_depth = max_depth
        self.ordered_counter = 0
        margin = canvas.get_left_margin()
        self._frames: list[ContainerFrame] = [
            ContainerFrame(
                style=root_style,
                left_margin=margin,
                content_left_margin=margin,
                saved_left_margin=margin,
            )
        ]

    @property
    def depth(self) -> int:
        return len(self._frames)

    def peek(self) -> ContainerFrame:
        return self._frames[-1]

    def push(
        self,
        style: Style,
        *,
        list_kind: ListKind = ListKind.NONE,
        left_margin: float | None = None,
        content_left_margin: float | None = None,
        is_header: bool = False,
        is_cell: bool = False,
        destination: str | int = "",
    ) -> ContainerFrame:
        if len(self._frames) >= self.max_depth:
            raise ContainerStackError(f"container nesting exceeds {self.max_depth} levels")
        top = self.peek()
        left = top.left_margin if left_margin is None else left_margin
        if content_left_margin is None:
            content = top.content_left_margin if left_margin is None else left
        else:
            content = content_left_margin
        frame = ContainerFrame(
            style=style,
            list_kind=list_kind,
            left_margin=left,
            content_left_margin=content,
            counter_backup=self.ordered_counter,
            is_header=is_header,
            is_cell=is_cell,
            destination=destination,
            cell_style=style if is_cell else None,
            saved_left_margin=self.canvas.get_left_margin(),
        )
        self._frames.append(frame)
        return frame

    def pop(self) -> ContainerFrame:
        if len(self._frames) <= 1:
            raise ContainerStackError("cannot pop the root container")
        frame = self._frames.pop()
        self.canvas.set_left_margin(frame.saved_left_margin)
        if frame.list_kind is ListKind.ORDERED:
            self.ordered_counter = frame.counter_backup
        return frame

    def cell_frame(self) -> ContainerFrame | None:
        for frame in reversed(self._frames):
            if frame.is_cell:
                return frame
        return None

    def list_frame(self) -> ContainerFrame | None:
        for frame in reversed(self._frames):
            if frame.list_kind is not ListKind.NONE:
                return frame
        return None

    def in_list(self) -> bool:
        return self.list_frame() is not None

    def list_depth(self) -> int:
        return sum(1 for frame in self._frames if frame.list_kind is not ListKind.NONE)
