from storefront.models.schemas import Notification


class Notifier:
    """Collects the one-shot notifications raised while serving a request or widget.

    ``drain()`` hands them to the caller exactly once.
    """

    def __init__(self):
        self._pending: list[Notification] = []

    def info(self, title: str, description: str):
        self._pending.append(Notification(title=title, description=description))

    def error(self, title: str, description: str):
        self._pending.append(
            Notification(title=title, description=description, variant="destructive")
        )

    def drain(self) -> list[Notification]:
        drained, self._pending = self._pending, []
        return drained
