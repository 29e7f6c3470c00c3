from typing import Optional


class FatalKubeAPIError(Exception):
    """
    An exception raised when the cluster API could not be queried.
    The command runner already retried, so this is final for the current call.
    """

    def __init__(self, message: str, *, stderr: str = "", request: Optional[str] = None) -> None:
        super().__init__(message)
        self.stderr = stderr
        self.request = request
