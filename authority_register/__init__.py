# Authority Register // GPL-3.0-or-later
"""Authority Register — issues and versions FA/GA/AR numbers.

Modules:
    core.config           — args/register_config.yaml + environment overrides
    db.init_db            — SQLite schema, scoped register handle, transactions
    registry.validator    — parse "FA250" style tokens
    registry.operations   — register, deregister, increment, decrement, seed
    report.report_writer  — static HTML register report (Jinja2)
    cli.register_cli      — command dispatcher (authority-register)
    testing.health_check  — read-only store and config diagnostics
"""

__version__ = "1.0.0"
