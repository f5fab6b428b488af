from __future__ import annotations


class MarkpdfError(RuntimeError):
    pass


class ConfigError(MarkpdfError):
    pass


class ContainerStackError(MarkpdfError):
    pass


class ElementError(MarkpdfError):
    """A single element could not be rendered; the rest of the document still is."""

    def __init__(self, message: str, *, element: str = "") -> None:
        super().__init__(message)
        self.element = element


class ResourceNotFoundError(ElementError):
    pass


class RemoteFetchError(ElementError):
    pass
