"""Error taxonomy shared by the outline engine, storage and services."""


class OutlineError(Exception):
    """Base class for every error raised by sopgraph."""


class ValidationError(OutlineError):
    """A submitted document is malformed. Nothing from it is applied."""

    def __init__(self, problems: list[str] | str) -> None:
        self.problems = [problems] if isinstance(problems, str) else list(problems)
        super().__init__("Invalid document: " + "; ".join(self.problems))


class InvariantViolation(OutlineError):
    """An operation would break the outline's structural rules."""

    def __init__(self, reason: str, node_id: str | None = None) -> None:
        self.reason = reason
        self.node_id = node_id
        super().__init__(reason)


class PersistenceError(OutlineError):
    """The document store or version log could not be read or written."""

    def __init__(self, operation: str, project_id: str | None = None) -> None:
        self.operation = operation
        self.project_id = project_id
        target = f" for project {project_id}" if project_id else ""
        super().__init__(f"Persistence failure during {operation}{target}")


class NotFoundError(OutlineError):
    pass


class ProjectNotFoundError(NotFoundError):
    def __init__(self, project_id: str) -> None:
        self.project_id = project_id
        super().__init__(f"Project not found: {project_id}")


class NodeNotFoundError(NotFoundError):
    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"Node not found: {node_id}")
