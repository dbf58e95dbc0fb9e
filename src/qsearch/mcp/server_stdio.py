from __future__ import annotations

import json
import logging
import sys
from typing import IO

from qsearch.mcp.protocol import MCPProtocol
from qsearch.service import QuickSearchService

logger = logging.getLogger(__name__)

STOP_WORDS = {"quit", "exit", "shutdown"}


def serve_lines(protocol: MCPProtocol, lines: IO[str], out: IO[str]) -> int:
    handled = 0
    for line in lines:
        line = line.strip()
        if not line:
            continue
        if line in STOP_WORDS:
            break
        try:
            payload = json.loads(line)
        except json.JSONDecodeError:
            response: dict = {"ok": False, "error": "invalid json"}
        else:
            if isinstance(payload, dict):
                response = protocol.handle(payload)
            else:
                response = {"ok": False, "error": "request must be a json object"}
        out.write(json.dumps(response) + "\n")
        out.flush()
        handled += 1
    return handled


def run_stdio_server(service: QuickSearchService) -> int:
    handled = serve_lines(MCPProtocol(service), sys.stdin, sys.stdout)
    logger.info("stdio server handled %d requests", handled)
    return 0
