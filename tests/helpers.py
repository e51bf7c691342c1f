"""Test doubles and sample data shared by several test modules."""

from PySide6.QtCore import QObject, Signal

from flowcraft.model.state import Failed, RenderRequest, Rendered

SIMPLE_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="120" height="80" viewBox="0 0 120 80">'
    '<rect x="10" y="10" width="100" height="60" fill="#4a90d9"/>'
    "</svg>"
)


class FakeDispatcher(QObject):
    """Records submitted requests; tests decide when and how they resolve."""

    resolved = Signal(object, object)
    faulted = Signal(object, str)

    def __init__(self):
        super().__init__()
        self.requests: list[RenderRequest] = []
        self.shut_down = False

    def submit(self, request: RenderRequest) -> None:
        self.requests.append(request)

    def shutdown(self) -> None:
        self.shut_down = True

    def succeed(self, request: RenderRequest) -> Rendered:
        outcome = Rendered(svg=SIMPLE_SVG, source=request.text, theme=request.config.theme)
        self.resolved.emit(request, outcome)
        return outcome

    def fail(self, request: RenderRequest, message: str = "Parse error on line 2") -> Failed:
        outcome = Failed(message, source=request.text)
        self.resolved.emit(request, outcome)
        return outcome

    def fault(self, request: RenderRequest, message: str = "boom") -> None:
        self.faulted.emit(request, message)
