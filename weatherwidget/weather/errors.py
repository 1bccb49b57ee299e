"""
Exceptions raised by the weather widget core.

Every error carries a short user_message that the render boundary shows instead of
a traceback. Messages never contain the API key.
"""
from typing import Optional


class WeatherWidgetError(Exception):
    user_message = "Weather information is currently unavailable."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.user_message)
        if message:
            self.user_message = message


class ConfigurationError(WeatherWidgetError):
    user_message = "Weather widget is not configured correctly."


class CredentialError(WeatherWidgetError):
    """Base for problems with the stored API key."""


class EmptyInputError(CredentialError):
    user_message = "No new key entered; existing API key remains unchanged."


class NotConfiguredError(CredentialError):
    user_message = "No API key configured. Please enter it on the Settings page."


class DecryptionError(CredentialError):
    user_message = "Unable to decrypt API key. Please re-enter it on the Settings page."


class FetchError(WeatherWidgetError):
    """Base for failures of the upstream weather call."""


class NetworkError(FetchError):
    user_message = "Network error: Could not connect to OpenWeather API."

    def __init__(self, cause: Optional[BaseException] = None, detail: str = ""):
        message = self.user_message
        if detail:
            message = f"{message} {detail}"
        super().__init__(message)
        self.user_message = NetworkError.user_message
        self.cause = cause


class UpstreamApiError(FetchError):
    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(f"OpenWeather API error ({status}): {message}")


class ParseError(FetchError):
    user_message = "Failed to parse weather data from API."
