from __future__ import annotations

import pytest
import typer
from typer.testing import CliRunner

from switchboard import __version__
from switchboard.cli.main import app, parse_fields

runner = CliRunner()


def test_fields_are_json_decoded_when_possible() -> None:
    payload = parse_fields(
        ["maxPoints=50", "title=Essay", "published=true", 'data={"name": "Algebra"}'],
        '{"courseId": "c-1", "title": "Draft"}',
    )

    assert payload == {
        "courseId": "c-1",
        "title": "Essay",
        "maxPoints": 50,
        "published": True,
        "data": {"name": "Algebra"},
    }


def test_fields_must_be_key_value_pairs() -> None:
    with pytest.raises(typer.BadParameter):
        parse_fields(["justakey"])
    with pytest.raises(typer.BadParameter):
        parse_fields([], "[1, 2]")
    with pytest.raises(typer.BadParameter):
        parse_fields([], "{not json")


def test_version_command() -> None:
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert f"Switchboard v{__version__}" in result.output


def test_health_reports_unreachable_server() -> None:
    result = runner.invoke(app, ["health", "--url", "http://127.0.0.1:9"])

    assert result.exit_code == 1
    assert "not running" in result.output
