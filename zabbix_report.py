#!/usr/bin/env python3
"""
zabbix_report.py — Zabbix problem report (scheduled batch job)

Flow:
- load config.yaml (credentials + frontend URL), .env overrides
- sign in to the Zabbix frontend and grab the zbx_session cookie
- export the problem view as CSV
- render "Active Problems" and "Resolved Problems" tables
- write report/report-<timestamp>.html, optionally e-mail it

Exit status is 0 on success, otherwise the exit code of the failing stage
(see report_errors.ExitCode) so cron/monitoring can tell stages apart.

Usage:
    zabbix_report.py [--config config.yaml] [--no-email]
"""

import os
import sys
import logging
from dataclasses import dataclass, field
from datetime import datetime

import yaml
from dateutil import tz as dateutil_tz
from dotenv import dotenv_values
from filelock import FileLock, Timeout

from problem_report import (
    build_report_html,
    extract_active_problems,
    extract_resolved_problems,
    write_report,
)
from report_errors import (
    ConfigOpenError,
    ConfigParseError,
    ExitCode,
    ReportError,
    RunLockedError,
)
from report_mailer import send_report_email
from zabbix_client import DEFAULT_TIMEOUT, make_http_session, zabbix_export_csv, zabbix_login

# ---------------------------
# Load env defaults
# ---------------------------
for k, v in dotenv_values().items():
    if k and v is not None:
        os.environ.setdefault(k, str(v))

CONFIG_FILE = os.getenv("ZABBIX_CONFIG", "config.yaml")
RUN_LOCK_FILE = os.getenv("RUN_LOCK_FILE", "zabbix_report.lock")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(level=getattr(logging, LOG_LEVEL, logging.INFO), format="%(asctime)s - %(levelname)s - %(message)s")

DEFAULT_REPORT_DIR = "report"

USAGE = "Usage: zabbix_report.py [--config config.yaml] [--no-email]"


def _truthy(value):
    return str(value).lower() in ("1", "true", "yes")


@dataclass(frozen=True)
class EmailSettings:
    enabled: bool = False
    smtp: str = ""
    port: int = 587
    user: str = ""
    password: str = field(default="", repr=False)
    sender: str = ""
    to: tuple = ()


@dataclass(frozen=True)
class Config:
    username: str
    password: str = field(repr=False)
    base_url: str
    http_timeout: float = DEFAULT_TIMEOUT
    verify_ssl: bool = True
    report_dir: str = DEFAULT_REPORT_DIR
    email: EmailSettings = field(default_factory=EmailSettings)


def load_email_settings(environ=None):
    environ = os.environ if environ is None else environ
    user = environ.get("EMAIL_USER", "")
    try:
        port = int(environ.get("EMAIL_PORT", "587"))
    except ValueError as e:
        raise ConfigParseError(f"invalid EMAIL_PORT, error: {e}") from e
    return EmailSettings(
        enabled=_truthy(environ.get("EMAIL_ENABLED", "false")),
        smtp=environ.get("EMAIL_SMTP", ""),
        port=port,
        user=user,
        password=environ.get("EMAIL_PASS", ""),
        sender=environ.get("EMAIL_FROM", user),
        to=tuple(e.strip() for e in environ.get("EMAIL_TO", "").split(",") if e.strip()),
    )


def load_config(path=None, environ=None):
    """Read the YAML config at ``path``; ZABBIX_* variables win over the file.

    Raises ConfigOpenError when the file can't be read and ConfigParseError
    when it isn't a YAML mapping or a required key is missing.
    """
    path = path or CONFIG_FILE
    environ = os.environ if environ is None else environ
    logging.info("loading %s", path)

    try:
        with open(path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigOpenError(f"failed to open {path}, error: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigParseError(f"failed to deserialize the config {path}, error: {e}") from e

    if not isinstance(cfg, dict):
        raise ConfigParseError(f"failed to deserialize the config {path}, error: expected a mapping")
    settings = cfg.get("settings", {}) or {}
    if not isinstance(settings, dict):
        raise ConfigParseError(f"failed to deserialize the config {path}, error: settings must be a mapping")

    values = {
        "zabbix_username": environ.get("ZABBIX_USERNAME", cfg.get("zabbix_username")),
        "zabbix_password": environ.get("ZABBIX_PASSWORD", cfg.get("zabbix_password")),
        "zabbix_url": environ.get("ZABBIX_URL", cfg.get("zabbix_url")),
    }
    missing = [k for k, v in values.items() if v is None or str(v) == ""]
    if missing:
        raise ConfigParseError(f"config {path} is missing required key(s): {', '.join(missing)}")

    try:
        http_timeout = float(environ.get("HTTP_TIMEOUT", settings.get("http_timeout", DEFAULT_TIMEOUT)))
    except (TypeError, ValueError) as e:
        raise ConfigParseError(f"invalid http_timeout in {path}, error: {e}") from e

    report_dir = environ.get("REPORT_DIR", settings.get("report_dir", DEFAULT_REPORT_DIR))
    if not isinstance(report_dir, str) or not report_dir:
        raise ConfigParseError(f"invalid report_dir in {path}: {report_dir!r}")

    return Config(
        # yaml turns an all-digit password into an int
        username=str(values["zabbix_username"]),
        password=str(values["zabbix_password"]),
        base_url=str(values["zabbix_url"]).rstrip("/"),
        http_timeout=http_timeout,
        verify_ssl=_truthy(environ.get("VERIFY_SSL", settings.get("verify_ssl", True))),
        report_dir=report_dir,
        email=load_email_settings(environ),
    )


def log_config(config):
    logging.info("zabbix_username: %s", config.username)
    logging.info("zabbix_password: %s", "*" * len(config.password))
    logging.info("zabbix_url: %s", config.base_url)


def run_report(config, session=None, now=None, send_email=True):
    """Run the whole pipeline once and return the path of the written report."""
    session = session or make_http_session(verify_ssl=config.verify_ssl)
    now = now or datetime.now(dateutil_tz.tzlocal())

    session_token = zabbix_login(
        config.base_url, config.username, config.password,
        session=session, timeout=config.http_timeout,
    )
    raw_csv = zabbix_export_csv(config.base_url, session_token, session=session, timeout=config.http_timeout)

    html_problem_table = extract_active_problems(raw_csv)
    html_resolved_table = extract_resolved_problems(raw_csv)
    report_html = build_report_html(html_problem_table, html_resolved_table)

    path = write_report(report_html, report_dir=config.report_dir, now=now)

    if send_email:
        subject = f"Zabbix Problem Report: {now.strftime('%d-%b %I:%M %p')}"
        send_report_email(config.email, subject, report_html)

    return path


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv

    config_path = None
    if "--config" in argv:
        idx = argv.index("--config")
        if idx + 1 >= len(argv):
            print(USAGE)
            return 1
        config_path = argv[idx + 1]
    send_email = "--no-email" not in argv

    try:
        config = load_config(config_path)
        log_config(config)

        lock = FileLock(RUN_LOCK_FILE, timeout=0)
        try:
            with lock:
                run_report(config, send_email=send_email)
        except Timeout as e:
            raise RunLockedError(f"another report run holds {RUN_LOCK_FILE}") from e
    except ReportError as e:
        logging.error("%s", e)
        return e.exit_code

    return ExitCode.SUCCESS


if __name__ == "__main__":
    sys.exit(main())
