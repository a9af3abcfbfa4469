"""Domain errors surfaced to API callers as `{"error": ..., "kind": ...}`."""


class AdStudioError(Exception):
    """Base error. `kind` is the discriminator the frontend switches on."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        return {"error": self.message, "kind": self.kind}


class AuthenticationError(AdStudioError):
    status_code = 401


class ConfigurationError(AdStudioError):
    status_code = 400


class NotFoundError(AdStudioError):
    status_code = 404


class FetchError(AdStudioError):
    status_code = 502

    def __init__(self, message: str, status: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status = status
        self.body = body

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.status is not None:
            data["status"] = self.status
        return data


class ClassificationError(AdStudioError):
    status_code = 502


class GenerationError(AdStudioError):
    status_code = 502
