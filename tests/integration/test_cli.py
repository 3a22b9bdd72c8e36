"""
Integration tests for the adf-bridge command line.
"""

import json

import pytest
from click.testing import CliRunner

from adf_bridge.cli import cli

PANEL_DOC = {
    "version": 1,
    "type": "doc",
    "content": [
        {
            "type": "panel",
            "attrs": {"panelType": "warning"},
            "content": [{"type": "paragraph", "content": [{"type": "text", "text": "Careful"}]}],
        }
    ],
}

MEDIA_DOC = {
    "version": 1,
    "type": "doc",
    "content": [
        {
            "type": "mediaSingle",
            "content": [{"type": "media", "attrs": {"id": "6f1c2a", "type": "file"}}],
        }
    ],
}

CARD_DOC = {
    "version": 1,
    "type": "doc",
    "content": [
        {
            "type": "paragraph",
            "content": [
                {"type": "inlineCard", "attrs": {"url": "https://example.atlassian.net/browse/ABC-1"}}
            ],
        }
    ],
}


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in (
        "ADF_BRIDGE_USER_MAPPING",
        "ADF_BRIDGE_DIALECT",
        "ADF_BRIDGE_REGISTRY_FILE",
        "ADF_BRIDGE_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.mark.integration
class TestToAdf:
    """``adf-bridge to-adf``."""

    def test_stdin_to_json(self, runner):
        result = runner.invoke(cli, ["to-adf"], input="# Hi\n\nBody\n")

        assert result.exit_code == 0
        doc = json.loads(result.stdout)
        assert doc["version"] == 1
        assert [node["type"] for node in doc["content"]] == ["heading", "paragraph"]

    def test_file_argument(self, runner, tmp_path):
        source = tmp_path / "note.md"
        source.write_text("- a\n- b\n", encoding="utf-8")

        result = runner.invoke(cli, ["to-adf", str(source)])

        assert result.exit_code == 0
        assert json.loads(result.stdout)["content"][0]["type"] == "bulletList"

    def test_user_mapping(self, runner, tmp_path):
        mapping = tmp_path / "users.json"
        mapping.write_text(json.dumps({"@jane@example.com": "5b10ac8d"}))

        result = runner.invoke(
            cli, ["to-adf", "--user-mapping", str(mapping)], input="hi @jane@example.com\n"
        )

        mention = json.loads(result.stdout)["content"][0]["content"][1]
        assert mention == {"type": "mention", "attrs": {"id": "5b10ac8d", "text": "jane"}}

    def test_check_rejects_unsafe_kinds(self, runner):
        result = runner.invoke(cli, ["to-adf", "--check"], input="{panel}\nx\n{/panel}\n")

        assert result.exit_code == 1
        assert "FAIL: unsupported node types found: panel" in result.output


@pytest.mark.integration
class TestToMarkdown:
    """``adf-bridge to-markdown``."""

    def test_default_dialect(self, runner):
        result = runner.invoke(cli, ["to-markdown"], input=json.dumps(PANEL_DOC))

        assert result.exit_code == 0
        assert result.stdout == "---\nCareful\n\n---\n"

    def test_jira_dialect(self, runner):
        result = runner.invoke(cli, ["to-markdown", "--dialect", "jira"], input=json.dumps(PANEL_DOC))
        assert result.stdout == "\n{panel:type=warning}\nCareful\n\n{/panel}\n"

    def test_dialect_from_environment(self, runner, monkeypatch):
        monkeypatch.setenv("ADF_BRIDGE_DIALECT", "jira")
        result = runner.invoke(cli, ["to-markdown"], input=json.dumps(PANEL_DOC))
        assert "{/panel}" in result.stdout

    def test_invalid_document(self, runner):
        result = runner.invoke(cli, ["to-markdown"], input='{"type": "paragraph"}')

        assert result.exit_code == 1
        assert "not a valid ADF document" in result.output

    def test_registry_round_trip(self, runner, tmp_path):
        registry = tmp_path / "ids.json"

        rendered = runner.invoke(
            cli, ["to-markdown", "--registry", str(registry)], input=json.dumps(MEDIA_DOC)
        )
        assert rendered.exit_code == 0
        assert "{attachment:6f1c2a}" in rendered.output
        assert "Saved 1 identities" in rendered.output
        assert registry.exists()

        rebuilt = runner.invoke(
            cli, ["to-adf", "--registry", str(registry)], input="{attachment:6f1c2a}\n"
        )

        assert json.loads(rebuilt.stdout) == MEDIA_DOC

    def test_registry_merges_existing_file(self, runner, tmp_path):
        registry = tmp_path / "ids.json"

        runner.invoke(cli, ["to-markdown", "--registry", str(registry)], input=json.dumps(MEDIA_DOC))
        second = runner.invoke(
            cli, ["to-markdown", "--registry", str(registry)], input=json.dumps(CARD_DOC)
        )

        assert second.exit_code == 0
        assert "Saved 2 identities" in second.output
        data = json.loads(registry.read_text(encoding="utf-8"))
        assert list(data["media"]) == ["6f1c2a"]
        assert list(data["cards"]) == ["https://example.atlassian.net/browse/ABC-1"]

    def test_registry_file_from_environment(self, runner, tmp_path, monkeypatch):
        registry = tmp_path / "ids.json"
        monkeypatch.setenv("ADF_BRIDGE_REGISTRY_FILE", str(registry))

        rendered = runner.invoke(cli, ["to-markdown"], input=json.dumps(MEDIA_DOC))
        assert "Saved 1 identities" in rendered.output
        assert registry.exists()

        rebuilt = runner.invoke(cli, ["to-adf"], input="{attachment:6f1c2a}\n")
        assert json.loads(rebuilt.stdout) == MEDIA_DOC


@pytest.mark.integration
class TestChecks:
    """``check``, ``roundtrip`` and ``replace``."""

    def test_check_ok(self, runner):
        result = runner.invoke(cli, ["check"], input="plain **text**\n")

        assert result.exit_code == 0
        assert "OK: no unsupported node types" in result.output

    def test_check_fails(self, runner):
        result = runner.invoke(cli, ["check"], input="<u>x</u> @a@example.com\n")

        assert result.exit_code == 1
        assert "underline, mention" in result.output

    def test_roundtrip_ok(self, runner):
        result = runner.invoke(cli, ["roundtrip"], input="Hello\n\n- a\n- b\n")

        assert result.exit_code == 0
        assert "OK: round trip is lossless" in result.output

    def test_roundtrip_shows_diff(self, runner):
        result = runner.invoke(cli, ["roundtrip"], input="# Title\n\nBody\n")

        assert result.exit_code == 1
        assert "@@" in result.output

    def test_replace(self, runner):
        result = runner.invoke(cli, ["replace", "Careful", "Watch out"], input=json.dumps(PANEL_DOC))

        doc = json.loads(result.stdout)
        assert doc["content"][0]["content"][0]["content"][0]["text"] == "Watch out"
        assert doc["content"][0]["attrs"] == {"panelType": "warning"}

    def test_invalid_environment(self, runner, monkeypatch):
        monkeypatch.setenv("ADF_BRIDGE_DIALECT", "confluence")
        result = runner.invoke(cli, ["check"], input="x\n")

        assert result.exit_code == 1
        assert "ADF_BRIDGE_DIALECT" in result.output
