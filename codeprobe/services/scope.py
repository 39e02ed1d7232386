FILE_SCOPE = "Unknown"


class ScopeTracker:
    """
    Tracks the function or component whose body the walk is currently inside.

    The traversal is a single pass over the whole file, so calls, JSX usages
    and setter invocations are attributed to whatever declaration is current
    when they are visited. Callers pair every ``enter_scope`` with a
    ``leave_scope`` of the value it returned:

        previous = tracker.enter_scope("Button")
        try:
            walk(body)
        finally:
            tracker.leave_scope(previous)
    """

    def __init__(self, initial: str = FILE_SCOPE):
        self.current = initial
        self.depth = 0

    @property
    def at_file_scope(self) -> bool:
        return self.depth == 0

    def enter_scope(self, name: str) -> str:
        previous = self.current
        self.current = name
        self.depth += 1
        return previous

    def leave_scope(self, previous: str) -> None:
        if self.depth == 0:
            raise RuntimeError("leave_scope called without a matching enter_scope")
        self.current = previous
        self.depth -= 1
