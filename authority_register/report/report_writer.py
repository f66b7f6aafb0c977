#!/usr/bin/env python3
# Authority Register // GPL-3.0-or-later
"""Register report — every issued number as one static HTML page.

Reads the FA, GA and AR tables (highest number first) and renders one
table per class with Jinja2. This is what the register tool does when it
is run without any request flags. The page is written beside the database
unless report.path in args/register_config.yaml says otherwise.

Usage:
    python -m authority_register.report.report_writer [--db-path PATH] \\
        [--report-path PATH] [--json]
"""

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

import jinja2

from authority_register.core.config import load_config, resolve_db_path, resolve_report_path
from authority_register.db.init_db import open_register
from authority_register.registry.operations import IdentifierRecord, fetch_records
from authority_register.registry.validator import IdentifierClass

logger = logging.getLogger("authority_register.report")

REPORT_TEMPLATE = """\
<!DOCTYPE html>
<html><head>
<meta charset="utf-8">
<title>{{ title }}</title>
<style>
body {padding-right: 0px; padding-left: 0px; font-size: 80%;
  background: #fff; margin: 6px 12px; color: #000; padding-top: 0px;
  font-family: verdana, arial, sans-serif; text-align: left}
h1 {font-weight: 600; margin: 10px 0px 5px; color: #000080;
  margin-top: 0px; font-size: 1.6em}
h2 {font-weight: 600; margin: 10px 0px 5px; color: #000080;
  margin-top: 10px; font-size: 1.3em}
th {text-align: left}
p.generated {color: #666; margin-top: 16px}
</style></head>
<body><h1>{{ title }}</h1>
{% for section in sections %}
<h2 id="{{ section.code }}">{{ section.label }}</h2>
<table width="400">
<tr><th>Number</th><th>Version</th><th>Date registered</th></tr>
{% for record in section.records %}
<tr><td>{{ record.id | cell }}</td><td>{{ record.current_version | cell }}</td><td>{{ record.registration_date | cell }}</td></tr>
{% endfor %}
</table>
{% endfor %}
<p class="generated">Generated {{ generated_at }}</p>
</body></html>
"""


def _now():
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")


def _cell(value):
    """Missing column values show as "Empty"."""
    return "Empty" if value is None else value


def _environment():
    env = jinja2.Environment(
        autoescape=True,
        trim_blocks=True,
        lstrip_blocks=True,
        undefined=jinja2.StrictUndefined,
    )
    env.filters["cell"] = _cell
    return env


def collect_register(conn) -> Dict[IdentifierClass, List[IdentifierRecord]]:
    """Read every class table, in FA, GA, AR order."""
    return {cls: fetch_records(conn, cls) for cls in IdentifierClass}


def render_report(sections, title="Authority Register", generated_at=None) -> str:
    """Render the register page.

    Args:
        sections: mapping of IdentifierClass to its records, as returned by
            collect_register(). A missing class renders as an empty table.
        title: Page and heading title.
        generated_at: Timestamp text for the footer; defaults to now.
    """
    template = _environment().from_string(REPORT_TEMPLATE)
    return template.render(
        title=title,
        sections=[
            {
                "code": cls.value,
                "label": cls.label,
                "records": sections.get(cls, []),
            }
            for cls in IdentifierClass
        ],
        generated_at=generated_at or _now(),
    )


def write_report(conn, report_path, title="Authority Register") -> Optional[Path]:
    """Render the register and write it to *report_path*, replacing any old copy.

    A file that cannot be written is logged and None is returned; the
    caller carries on.
    """
    path = Path(report_path)
    html = render_report(collect_register(conn), title=title)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(html, encoding="utf-8")
    except OSError as exc:
        logger.error("Error writing report %s: %s", path, exc)
        return None
    logger.info("Wrote register report %s", path)
    return path


def main():
    parser = argparse.ArgumentParser(description="Write the Authority Register report")
    parser.add_argument("--db-path", help="Override database path")
    parser.add_argument("--report-path", help="Override report path")
    parser.add_argument("--config", help="Override config file path")
    parser.add_argument("--json", action="store_true", help="JSON output")
    args = parser.parse_args()

    config = load_config(args.config)
    db_path = resolve_db_path(config, args.db_path)
    report_path = resolve_report_path(config, db_path, args.report_path)
    db_cfg = config["database"]

    with open_register(db_path, db_cfg["busy_timeout_seconds"], db_cfg["journal_mode"]) as conn:
        counts = {cls.value: len(records) for cls, records in collect_register(conn).items()}
        written = write_report(conn, report_path, title=config["report"]["title"])

    result = {
        "status": "generated" if written else "error",
        "report_path": str(report_path),
        "counts": counts,
    }
    if args.json:
        print(json.dumps(result, indent=2))
    elif written:
        print(f"Report written: {written}")
        for code, count in counts.items():
            print(f"  {code}: {count}")
    else:
        print(f"ERROR: could not write {report_path}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
