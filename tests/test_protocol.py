import io
import json
from pathlib import Path

import yaml

from qsearch.config import AppConfig
from qsearch.mcp.protocol import MCPProtocol
from qsearch.mcp.server_stdio import serve_lines
from qsearch.service import QuickSearchService


def _protocol(tmp_path: Path) -> MCPProtocol:
    catalog = tmp_path / "catalog.yaml"
    catalog.write_text(
        yaml.safe_dump(
            {
                "apps": [{"app_name": "Maps", "package_name": "com.google.maps"}],
                "contacts": [
                    {
                        "contact_id": 8,
                        "display_name": "Alan Turing",
                        "phone_numbers": ["+442071838750", "+442071838751"],
                    }
                ],
            }
        )
    )
    cfg = AppConfig(db_path=tmp_path / "qsearch.sqlite3", catalog_path=catalog, pid_path=tmp_path / "mcp.pid")
    return MCPProtocol(QuickSearchService(cfg))


def test_search_and_pin_tools(tmp_path: Path) -> None:
    protocol = _protocol(tmp_path)
    res = protocol.handle({"tool": "qsearch_search", "args": {"query": "maps", "domain": "apps"}})
    assert res["ok"] is True
    assert [r["key"] for r in res["result"]] == ["com.google.maps"]

    res = protocol.handle({"method": "qsearch_pin", "params": {"domain": "apps", "key": "com.google.maps"}})
    assert res == {"ok": True, "result": {"pinned": True}}

    res = protocol.handle({"tool": "qsearch_pinned", "args": {"domain": "apps"}})
    assert [r["key"] for r in res["result"]["pinned"]] == ["com.google.maps"]


def test_errors_are_reported_not_raised(tmp_path: Path) -> None:
    protocol = _protocol(tmp_path)
    assert protocol.handle({"tool": "nope"}) == {"ok": False, "error": "unknown tool: nope"}

    res = protocol.handle({"tool": "qsearch_search", "args": {"query": "maps", "domain": "music"}})
    assert res == {"ok": False, "error": "unknown domain: music"}

    res = protocol.handle({"tool": "qsearch_channel", "args": {"contact_id": 99}})
    assert res == {"ok": False, "error": "contact not found: 99"}


def test_call_tools_walk_the_flow(tmp_path: Path) -> None:
    protocol = _protocol(tmp_path)
    res = protocol.handle({"tool": "qsearch_call", "args": {"contact_id": 8}})
    assert res["result"]["state"] == "pick_number"
    assert res["result"]["numbers"] == ["+442071838750", "+442071838751"]

    res = protocol.handle({"tool": "qsearch_select_number", "args": {"phone_number": "+442071838751"}})
    assert res["result"]["state"] == "direct_dial_choice"

    res = protocol.handle({"tool": "qsearch_direct_dial", "args": {"enabled": True}})
    assert res["result"]["state"] == "awaiting_permission"

    res = protocol.handle({"tool": "qsearch_permission_result", "args": {"granted": False}})
    assert [o["state"] for o in res["result"]] == ["dialer_launched"]
    assert res["result"][0]["request"]["action"] == "dial"


def test_serve_lines(tmp_path: Path) -> None:
    protocol = _protocol(tmp_path)
    lines = io.StringIO(
        "\n".join(
            [
                json.dumps({"tool": "qsearch_recent_record", "args": {"kind": "query", "value": "maps"}}),
                "{broken",
                "[1, 2]",
                "",
                json.dumps({"tool": "qsearch_recent"}),
                "quit",
                json.dumps({"tool": "qsearch_status"}),
            ]
        )
    )
    out = io.StringIO()
    assert serve_lines(protocol, lines, out) == 4

    replies = [json.loads(line) for line in out.getvalue().splitlines()]
    assert replies[0] == {"ok": True, "result": {"recorded": True}}
    assert replies[1] == {"ok": False, "error": "invalid json"}
    assert replies[2] == {"ok": False, "error": "request must be a json object"}
    assert replies[3]["result"][0]["stable_key"] == "query:maps"
