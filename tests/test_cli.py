"""Tests for the festauth CLI."""

from click.testing import CliRunner

from festauth.cli.main import cli
from festauth.cli.output import fmt_date, users_table
from festauth.core.auth import verify_password


def test_help_lists_commands():
    result = CliRunner().invoke(cli, ["--help"])
    assert result.exit_code == 0
    for command in ("serve", "users", "bootstrap-admin", "hash-password"):
        assert command in result.output


def test_hash_password():
    result = CliRunner().invoke(cli, ["hash-password", "--password", "long-enough-pw"])
    assert result.exit_code == 0
    assert verify_password("long-enough-pw", result.output.strip())


def test_users_table_renders_missing_values():
    class _Row:
        name = "Alice"
        username = None
        email = None
        role = "user"
        is_shadow_user = True
        lock_until = None
        last_login = None

    table = users_table([_Row()], title="Shadow users")
    assert table.title == "Shadow users (1)"
    assert table.row_count == 1
    assert fmt_date(None) == "—"
