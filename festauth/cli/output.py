"""Rich output helpers — user tables."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from rich.console import Console
from rich.table import Table
from rich.text import Text

console = Console()


def fmt_date(value: datetime | None) -> str:
    if value is None:
        return "—"
    return value.strftime("%Y-%m-%d %H:%M")


def role_style(role: str) -> str:
    return {"admin": "bold magenta", "user": "white"}.get(role, "white")


def users_table(users: list[Any], title: str = "Users") -> Table:
    table = Table(
        title=f"{title} ({len(users)})",
        show_header=True,
        header_style="bold cyan",
        border_style="dim",
        show_lines=False,
    )
    table.add_column("Name", style="bold")
    table.add_column("Username")
    table.add_column("E-mail", style="dim")
    table.add_column("Role")
    table.add_column("Shadow", justify="center")
    table.add_column("Locked until", style="yellow")
    table.add_column("Last login", style="dim")

    for u in users:
        shadow = Text("✓", style="magenta") if u.is_shadow_user else Text("✗", style="dim")
        table.add_row(
            u.name,
            u.username or "—",
            u.email or "—",
            Text(u.role, style=role_style(u.role)),
            shadow,
            fmt_date(u.lock_until),
            fmt_date(u.last_login),
        )
    return table
