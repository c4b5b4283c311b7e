"""Exception hierarchy for the video generation pipeline."""


class IssueCastError(Exception):
    """Base exception for all pipeline errors."""


class RemoteFetchError(IssueCastError):
    """Raised when the primary issue or pull request fetch fails."""


class ScriptGenerationError(IssueCastError):
    """Raised when the completion request for the script cannot be made."""


class AudioSynthesisError(IssueCastError):
    """Raised when speech synthesis fails for any section."""


class SlideRenderError(IssueCastError):
    """Raised when a slide cannot be rendered to an image."""


class CommandError(IssueCastError):
    """Raised when an external command exits with a non-zero code."""

    def __init__(self, cmd: list[str], returncode: int, output: str):
        self.cmd = cmd
        self.returncode = returncode
        self.output = output
        super().__init__(f"Command failed with code {returncode}: {cmd[0] if cmd else '?'}")


class CompositionError(IssueCastError):
    """Raised when ffmpeg fails to encode the final video."""

    def __init__(self, message: str, output: str = ""):
        self.output = output
        if output:
            message = f"{message}\n{output[-2000:]}"
        super().__init__(message)


class AuthError(IssueCastError):
    """Raised when the YouTube refresh-token exchange fails."""


class UploadError(IssueCastError):
    """Raised when either phase of the resumable upload fails."""


class LinkPostError(IssueCastError):
    """Raised when posting the video link comment to GitHub fails."""


class DependencyMissingError(IssueCastError):
    """Raised when ffmpeg or ffprobe is not available."""
