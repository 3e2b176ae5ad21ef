class DeepFormError(Exception):
    """Base exception for the DeepForm backend."""

    pass


class GenerationError(DeepFormError):
    """Raised when the generative service call fails or returns no text."""

    def __init__(self, message: str, stage: str | None = None):
        self.stage = stage
        super().__init__(message)


class PipelineBusyError(DeepFormError):
    """Raised when another pipeline run already holds the session lease."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Pipeline already running for session '{session_id}'")
