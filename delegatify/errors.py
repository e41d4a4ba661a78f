from discord import app_commands


class DelegatifyError(app_commands.AppCommandError):
    """Base for failures that end a command with a message for the user."""

    default_message = "Something went wrong."

    def __init__(self, message: str = ""):
        super().__init__(message or self.default_message)


class Unauthenticated(DelegatifyError):
    default_message = "The application isn't authenticated.\nrun '/authenticate' to connect."


class MalformedLink(DelegatifyError):
    default_message = "That doesn't look like a valid Spotify track link."


class NoResults(DelegatifyError):
    default_message = "No results were found."


class Cancelled(DelegatifyError):
    default_message = "Cancelled interaction."


class NoInteraction(DelegatifyError):
    default_message = "No interaction; the request timed out."


class RemoteServiceError(DelegatifyError):
    default_message = "Spotify request failed. Try again later."


class AuthExchangeFailure(DelegatifyError):
    def __init__(self, reason: str):
        super().__init__(f"Failed to Authenticate:\n{reason}")
        self.reason = reason


class PermissionStoreError(DelegatifyError):
    default_message = "The permission database is unavailable."
