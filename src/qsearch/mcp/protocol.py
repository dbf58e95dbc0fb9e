from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any

from qsearch.service import QuickSearchService, outcome_output

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class MCPResponse:
    ok: bool
    result: Any | None = None
    error: str | None = None

    def as_dict(self) -> dict[str, Any]:
        out = {"ok": self.ok}
        if self.ok:
            out["result"] = self.result
        else:
            out["error"] = self.error or "unknown error"
        return out


def _str_list(value: Any) -> list[str] | None:
    if value is None:
        return None
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


class MCPProtocol:
    def __init__(self, service: QuickSearchService):
        self.service = service

    def handle(self, payload: dict[str, Any]) -> dict[str, Any]:
        tool = payload.get("tool") or payload.get("method")
        args = payload.get("args") or payload.get("params") or {}

        try:
            result = self._dispatch(str(tool or ""), args)
        except LookupError as exc:
            return MCPResponse(ok=False, error=str(exc.args[0]) if exc.args else "not found").as_dict()
        except Exception as exc:
            logger.debug("tool %s failed", tool, exc_info=True)
            return MCPResponse(ok=False, error=str(exc)).as_dict()
        if result is _UNKNOWN:
            return MCPResponse(ok=False, error=f"unknown tool: {tool}").as_dict()
        return MCPResponse(ok=True, result=result).as_dict()

    def _dispatch(self, tool: str, args: dict[str, Any]) -> Any:
        svc = self.service

        if tool == "qsearch_search":
            query = str(args.get("query", ""))
            domain = args.get("domain")
            if domain:
                return svc.search(str(domain), query)
            return svc.search_all(query, domains=_str_list(args.get("domains")))

        if tool == "qsearch_state":
            return svc.get_state(str(args.get("domain", "")), str(args.get("query", "")))

        if tool == "qsearch_pinned":
            return svc.pinned_and_excluded(str(args.get("domain", "")))

        if tool in {"qsearch_pin", "qsearch_unpin", "qsearch_exclude", "qsearch_include"}:
            domain = str(args.get("domain", ""))
            key = str(args.get("key", ""))
            if tool == "qsearch_pin":
                return {"pinned": svc.pin(domain, key)}
            getattr(svc, tool.removeprefix("qsearch_"))(domain, key)
            return {"domain": domain, "key": key}

        if tool == "qsearch_nickname":
            domain = str(args.get("domain", ""))
            key = str(args.get("key", ""))
            svc.set_nickname(domain, key, args.get("nickname"))
            return {"domain": domain, "key": key, "nickname": args.get("nickname")}

        if tool == "qsearch_clear_excluded":
            svc.clear_all_excluded(str(args.get("domain", "")))
            return {"cleared": True}

        if tool == "qsearch_refresh":
            return svc.refresh(args.get("domain"))

        if tool == "qsearch_channel":
            return svc.channel(int(args["contact_id"]), phone_number=args.get("phone_number"))

        if tool == "qsearch_call":
            contact = svc.require_contact(int(args["contact_id"]))
            return outcome_output(svc.contact_actions().call_contact(contact))

        if tool == "qsearch_message":
            contact = svc.require_contact(int(args["contact_id"]))
            return outcome_output(svc.contact_actions().sms_contact(contact))

        if tool == "qsearch_select_number":
            outcome = svc.contact_actions().select_number(
                str(args.get("phone_number", "")), remember=bool(args.get("remember", False))
            )
            return outcome_output(outcome)

        if tool == "qsearch_direct_dial":
            return outcome_output(svc.contact_actions().choose_direct_dial(bool(args.get("enabled", False))))

        if tool == "qsearch_permission_result":
            outcomes = svc.contact_actions().on_call_permission_result(bool(args.get("granted", False)))
            return [outcome_output(o) for o in outcomes]

        if tool == "qsearch_recent":
            return svc.recent()

        if tool == "qsearch_recent_record":
            return {"recorded": svc.record_recent(str(args.get("kind", "query")), str(args.get("value", "")))}

        if tool == "qsearch_recent_rm":
            svc.delete_recent(str(args.get("kind", "query")), str(args.get("value", "")))
            return {"deleted": True}

        if tool == "qsearch_recent_clear":
            svc.clear_recent()
            return {"cleared": True}

        if tool == "qsearch_status":
            return svc.status()

        return _UNKNOWN


_UNKNOWN = object()
