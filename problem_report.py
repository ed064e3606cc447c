"""
Turn the Zabbix problem CSV into the HTML report.

CSV columns used (0-based): 1 time, 3 status, 4 host, 5 problem, 6 duration.
Every other column is ignored, and so is any row whose status is not the
one being rendered (the CSV header row included).
"""

import csv
import html
import io
import logging
import os
from datetime import datetime
from pathlib import Path

from dateutil import tz as dateutil_tz

from report_errors import ReportWriteError

STATUS_ACTIVE = "PROBLEM"
STATUS_RESOLVED = "RESOLVED"

COL_TIME = 1
COL_STATUS = 3
COL_HOST = 4
COL_PROBLEM = 5
COL_DURATION = 6
MIN_COLUMNS = COL_DURATION + 1

TABLE_HEADINGS = ["Host", "Problem", "Time", "Duration"]

REPORT_STYLE = """<style>
    table {
        border: 1px solid;
        border-color: black;
        border-collapse: collapse;
    }

    tr {
        border: 1px solid;
        border-color: black;
        border-collapse: collapse;
    }

    td {
        border: 1px solid;
        border-color: black;
        border-collapse: collapse;
    }
</style>"""


def _header_row():
    cells = "".join(f'<td style="text-align: center;">{h}</td>' for h in TABLE_HEADINGS)
    return f"<tr>{cells}</tr>\n"


def _problem_row(record):
    cells = (
        record[COL_HOST],
        record[COL_PROBLEM],
        record[COL_TIME],
        record[COL_DURATION],
    )
    return "<tr>" + "".join(f"<td>{html.escape(c)}</td>" for c in cells) + "</tr>\n"


def extract_problems(csv_content, status):
    """Render the rows of ``csv_content`` whose status equals ``status``.

    Short rows are skipped. A row the csv module cannot parse ends the scan;
    whatever was rendered up to that point is kept.
    """
    out = io.StringIO()
    out.write("<table>" + _header_row())

    reader = csv.reader(io.StringIO(csv_content))
    matched = 0
    try:
        for record in reader:
            if len(record) < MIN_COLUMNS:
                if record:
                    logging.debug("Skipping short CSV row %d (%d fields)", reader.line_num, len(record))
                continue
            if record[COL_STATUS] != status:
                continue
            out.write(_problem_row(record))
            matched += 1
    except csv.Error as e:
        logging.warning("Stopped reading problem CSV at line %d: %s", reader.line_num, e)

    out.write("</table>")
    logging.info("Rendered %d %s row(s)", matched, status)
    return out.getvalue()


def extract_active_problems(csv_content):
    return extract_problems(csv_content, STATUS_ACTIVE)


def extract_resolved_problems(csv_content):
    return extract_problems(csv_content, STATUS_RESOLVED)


def build_report_html(active_table, resolved_table):
    return (
        REPORT_STYLE
        + f'<p style="text-align: center">Active Problems</p>{active_table}'
        + f'<p style="text-align: center">Resolved Problems</p>{resolved_table}\n'
    )


def report_filename(now):
    return "report-%d-%d-%d-%d-%d-%d.html" % (
        now.year, now.month, now.day, now.hour, now.minute, now.second,
    )


def write_report(report_html, report_dir="report", now=None):
    """Write the document to ``report_dir`` and return its path."""
    now = now or datetime.now(dateutil_tz.tzlocal())
    path = Path(report_dir) / report_filename(now)
    try:
        os.makedirs(report_dir, mode=0o755, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(report_html)
    except OSError as e:
        raise ReportWriteError(f"failed to write report {path}, error: {e}") from e

    logging.info("Report written to %s", path)
    return path
