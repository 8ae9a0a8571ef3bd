"""
Execution context for the Sam interpreter.

Manages the stack of variable frames and tracks active function calls.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from contextlib import contextmanager

from .values import Value
from ..errors import error_call_depth


Frame = Dict[str, Value]


@dataclass
class Context:
    """
    The scope stack for one evaluation run.

    Frame 0 is the global frame and lives as long as the context. Blocks
    and calls push one frame on entry and pop it on exit. Name lookup
    searches from the innermost frame outwards, so anything bound in a
    frame that is still live is visible to nested code.

    Tracks:
    - Variable frames
    - Names of active function calls
    - The program tree, for re-locating function bodies
    - Source lines, for error messages
    """
    frames: List[Frame] = field(default_factory=lambda: [{}])
    call_stack: List[str] = field(default_factory=list)
    tree: Any = None
    source: bytes = b""
    source_lines: List[str] = field(default_factory=list)

    def push_scope(self, bindings: Optional[Frame] = None) -> Frame:
        """Push a new frame, optionally pre-seeded with bindings."""
        frame = dict(bindings) if bindings else {}
        self.frames.append(frame)
        return frame

    def pop_scope(self) -> Frame:
        """Remove and return the innermost frame."""
        if len(self.frames) <= 1:
            raise RuntimeError("cannot pop the global scope")
        return self.frames.pop()

    def current_scope(self) -> Frame:
        return self.frames[-1]

    def global_scope(self) -> Frame:
        return self.frames[0]

    def resolve(self, name: str) -> Optional[Value]:
        """Look up a variable, innermost frame first."""
        frame = self.frame_of(name)
        if frame is None:
            return None
        return frame[name]

    def frame_of(self, name: str) -> Optional[Frame]:
        """Return the innermost frame that binds `name`."""
        for frame in reversed(self.frames):
            if name in frame:
                return frame
        return None

    def declare(self, name: str, value: Value) -> None:
        """Bind a name in the current frame, replacing any binding already there."""
        self.current_scope()[name] = value

    def assign(self, name: str, value: Value) -> bool:
        """
        Overwrite an existing binding in place.

        Returns True if found and updated, False if not found.
        """
        frame = self.frame_of(name)
        if frame is None:
            return False
        frame[name] = value
        return True

    @contextmanager
    def new_scope(self, bindings: Optional[Frame] = None):
        """
        Context manager for a nested frame; the frame is popped on every exit.

        Usage:
            with ctx.new_scope({"x": int_val(1)}):
                ...
        """
        depth = len(self.frames)
        frame = self.push_scope(bindings)
        try:
            yield frame
        finally:
            del self.frames[depth:]

    @contextmanager
    def function_call(self, name: str, limit: int):
        """Track an active call, refusing to nest deeper than `limit`."""
        if len(self.call_stack) >= limit:
            raise error_call_depth(limit)
        self.call_stack.append(name)
        try:
            yield
        finally:
            self.call_stack.pop()

    def depth(self) -> int:
        """Number of active function calls."""
        return len(self.call_stack)

    def global_bindings(self) -> Dict[str, Any]:
        """Plain-Python view of the global frame."""
        return {name: value.to_python() for name, value in self.global_scope().items()}

    def get_source_line(self, line_num: int) -> Optional[str]:
        """Get a source line (1-indexed) for error messages."""
        if 1 <= line_num <= len(self.source_lines):
            return self.source_lines[line_num - 1]
        return None


def create_context(tree: Any = None, source: bytes = b"") -> Context:
    """
    Create a fresh context with only the global frame.

    Args:
        tree: The parsed program, used to look up function bodies
        source: The UTF-8 source bytes the tree indexes
    """
    return Context(
        tree=tree,
        source=source,
        source_lines=source.decode("utf-8", errors="replace").splitlines(),
    )
