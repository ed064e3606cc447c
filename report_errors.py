"""
Failure taxonomy for the Zabbix problem report.

Each failure stage has its own exception type and exit code so a scheduler
can tell which stage failed without parsing the log output.
"""


class ExitCode:
    SUCCESS = 0
    ERROR_OPENING_CONFIG = 1
    ERROR_DESERIALIZING_CONFIG = 2
    ERROR_LOGIN_REQUEST_BUILDER = 3
    ERROR_LOGIN_REQUEST = 4
    ERROR_WRONG_CREDENTIALS = 5
    ERROR_EXPORT_REQUEST_BUILDER = 6
    ERROR_MISSING_COOKIE = 7
    ERROR_EXPORT_REQUEST = 8
    ERROR_EXPORT_STATUS = 9
    ERROR_WRITING_REPORT = 10
    ERROR_RUN_LOCKED = 11
    ERROR_UNCLASSIFIED = 12


class ReportError(Exception):
    """Base exception for every fatal report failure."""

    exit_code = ExitCode.ERROR_UNCLASSIFIED


# --- configuration ---

class ConfigOpenError(ReportError):
    """Config file missing or unreadable."""

    exit_code = ExitCode.ERROR_OPENING_CONFIG


class ConfigParseError(ReportError):
    """Config file is not valid YAML or lacks a required key."""

    exit_code = ExitCode.ERROR_DESERIALIZING_CONFIG


# --- login ---

class LoginRequestBuildError(ReportError):
    exit_code = ExitCode.ERROR_LOGIN_REQUEST_BUILDER


class LoginRequestError(ReportError):
    exit_code = ExitCode.ERROR_LOGIN_REQUEST


class WrongCredentialsError(ReportError):
    """The frontend answered the login with something other than a 302."""

    exit_code = ExitCode.ERROR_WRONG_CREDENTIALS


class MissingCookieError(ReportError):
    """The login redirect carried no zbx_session cookie."""

    exit_code = ExitCode.ERROR_MISSING_COOKIE


# --- export ---

class ExportRequestBuildError(ReportError):
    exit_code = ExitCode.ERROR_EXPORT_REQUEST_BUILDER


class ExportRequestError(ReportError):
    exit_code = ExitCode.ERROR_EXPORT_REQUEST


class ExportStatusError(ReportError):
    exit_code = ExitCode.ERROR_EXPORT_STATUS

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


# --- output / run ---

class ReportWriteError(ReportError):
    exit_code = ExitCode.ERROR_WRITING_REPORT


class RunLockedError(ReportError):
    """Another report run still holds the run lock."""

    exit_code = ExitCode.ERROR_RUN_LOCKED
