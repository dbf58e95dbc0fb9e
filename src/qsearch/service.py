from __future__ import annotations

from dataclasses import asdict
import logging
from typing import Any

from qsearch.config import AppConfig
from qsearch.contacts.actions import (
    ActionLauncher,
    ActionOutcome,
    ContactActionCoordinator,
    PermissionChecker,
    RecordingLauncher,
    StaticPermissionChecker,
)
from qsearch.contacts.channels import CallingApp, MessagingApp, parse_calling_app, parse_messaging_app
from qsearch.contacts.resolver import ProviderRowIndex, resolve_calling_channel, resolve_messaging_channel
from qsearch.db import Database
from qsearch.errors import UnknownDomainError
from qsearch.handlers import (
    AppSearchHandler,
    AppShortcutSearchHandler,
    ContactSearchHandler,
    FileFilters,
    FileSearchHandler,
    SearchHandler,
    SettingsSearchHandler,
)
from qsearch.models import ContactInfo, Domain
from qsearch.output_models import (
    ActionOutcomeOutput,
    ChannelOutput,
    DomainResultsOutput,
    EntityOutput,
    LaunchRequestOutput,
    RecentEntryOutput,
    SearchResponseOutput,
)
from qsearch.overlay import CustomizationOverlay
from qsearch.phone import format_for_display
from qsearch.rank.priority import prepare_query
from qsearch.recent import RecentEntry, RecentKind, RecentLedger
from qsearch.sources import CandidateSource, CatalogSource
from qsearch.store import PreferenceStore, SqlitePreferenceStore

logger = logging.getLogger(__name__)


def parse_domain(name: str | Domain) -> Domain:
    if isinstance(name, Domain):
        return name
    try:
        return Domain(name.strip().lower())
    except ValueError:
        raise UnknownDomainError(name) from None


def _details(item: Any) -> dict[str, Any]:
    return {k: v for k, v in asdict(item).items() if v not in (None, "", (), [])}


def outcome_output(outcome: ActionOutcome) -> dict[str, Any]:
    request = None
    if outcome.request is not None:
        request = LaunchRequestOutput(
            action=outcome.request.action.value,
            target=outcome.request.target,
            data_id=outcome.request.data_id,
            package_name=outcome.request.package_name,
        )
    return ActionOutcomeOutput(
        state=outcome.state.value,
        ok=outcome.ok,
        failure=outcome.failure.value if outcome.failure else None,
        numbers=list(outcome.numbers),
        request=request,
    ).model_dump()


class QuickSearchService:
    def __init__(
        self,
        config: AppConfig,
        source: CandidateSource | None = None,
        store: PreferenceStore | None = None,
        launcher: ActionLauncher | None = None,
        permissions: PermissionChecker | None = None,
    ):
        self.config = config
        self.db: Database | None = None
        if store is None:
            self.db = Database(config.db_path)
            self.db.initialize()
            store = SqlitePreferenceStore(self.db)
        self.store = store
        self.source = source or CatalogSource(config.catalog_path)
        self.launcher = launcher or RecordingLauncher()
        self.permissions = permissions or StaticPermissionChecker()
        self.recent_ledger = RecentLedger(store, capacity=config.recent.capacity, enabled=config.recent.enabled)
        self.row_index = ProviderRowIndex(self.source.row_ids_for_number)
        self.handlers = self._build_handlers()
        self._loaded: set[Domain] = set()
        self._coordinator: ContactActionCoordinator | None = None

    def _build_handlers(self) -> dict[Domain, SearchHandler[Any]]:
        s = self.config.search

        def overlay(domain: Domain) -> CustomizationOverlay:
            return CustomizationOverlay(self.store, domain.value)

        return {
            Domain.APPS: AppSearchHandler(
                overlay(Domain.APPS),
                limit=s.apps_limit,
                min_query_length=s.min_query_length,
                hidden_packages=s.hidden_app_packages,
                sort_by_usage=s.sort_apps_by_usage,
            ),
            Domain.CONTACTS: ContactSearchHandler(
                overlay(Domain.CONTACTS), limit=s.contacts_limit, min_query_length=s.min_query_length
            ),
            Domain.FILES: FileSearchHandler(
                overlay(Domain.FILES),
                limit=s.files_limit,
                min_query_length=s.min_query_length,
                filters=FileFilters.from_config(self.config.files),
            ),
            Domain.SETTINGS: SettingsSearchHandler(
                overlay(Domain.SETTINGS),
                limit=s.settings_limit,
                min_query_length=s.min_query_length,
                disabled_ids=s.disabled_setting_ids,
            ),
            Domain.SHORTCUTS: AppShortcutSearchHandler(
                overlay(Domain.SHORTCUTS),
                limit=s.shortcuts_limit,
                min_query_length=s.min_query_length,
                disabled_keys=s.disabled_shortcut_keys,
            ),
        }

    def handler(self, domain: str | Domain) -> SearchHandler[Any]:
        return self.handlers[parse_domain(domain)]

    def refresh(self, domain: str | Domain | None = None) -> dict[str, int]:
        domains = list(Domain) if domain is None else [parse_domain(domain)]
        out: dict[str, int] = {}
        for d in domains:
            handler = self.handlers[d]
            handler.load(lambda d=d: self.source.load(d))
            self._loaded.add(d)
            out[d.value] = len(handler.candidates())
        self.row_index.clear()
        return out

    def _ensure_loaded(self, domain: Domain) -> SearchHandler[Any]:
        if domain not in self._loaded:
            self.refresh(domain)
        return self.handlers[domain]

    def _entity(self, handler: SearchHandler[Any], item: Any, state: Any, query: str | None = None) -> EntityOutput:
        key = handler.key_of(item)
        priority = None
        if query is not None:
            priority = handler.priority(item, prepare_query(query), state.nicknames).name
        return EntityOutput(
            domain=handler.domain.value,
            key=key,
            name=handler.display_name(item),
            nickname=state.nicknames.get(key),
            pinned=key in state.pinned,
            excluded=key in state.excluded,
            priority=priority,
            details=_details(item),
        )

    def _domain_output(self, domain: Domain, query: str, with_results: bool = True) -> DomainResultsOutput:
        handler = self._ensure_loaded(domain)
        state = handler.overlay.snapshot()
        search_state = handler.get_state(query) if with_results else handler.pinned_and_excluded()
        return DomainResultsOutput(
            domain=domain.value,
            pinned=[self._entity(handler, i, state) for i in search_state.pinned],
            excluded=[self._entity(handler, i, state) for i in search_state.excluded],
            results=[self._entity(handler, i, state, query) for i in search_state.results],
        )

    def search(self, domain: str | Domain, query: str) -> list[dict[str, Any]]:
        d = parse_domain(domain)
        handler = self._ensure_loaded(d)
        state = handler.overlay.snapshot()
        return [self._entity(handler, item, state, query).model_dump() for item in handler.search(query)]

    def search_all(self, query: str, domains: list[str] | None = None) -> dict[str, Any]:
        selected = [parse_domain(d) for d in domains] if domains else list(Domain)
        response = SearchResponseOutput(
            query=query,
            domains=[self._domain_output(d, query) for d in selected],
        )
        return response.model_dump()

    def get_state(self, domain: str | Domain, query: str) -> dict[str, Any]:
        return self._domain_output(parse_domain(domain), query).model_dump()

    def pinned_and_excluded(self, domain: str | Domain) -> dict[str, Any]:
        return self._domain_output(parse_domain(domain), "", with_results=False).model_dump()

    def pin(self, domain: str | Domain, key: str) -> bool:
        return self.handler(domain).overlay.pin(key)

    def unpin(self, domain: str | Domain, key: str) -> None:
        self.handler(domain).overlay.unpin(key)

    def exclude(self, domain: str | Domain, key: str) -> None:
        self.handler(domain).overlay.exclude(key)

    def include(self, domain: str | Domain, key: str) -> None:
        self.handler(domain).overlay.include(key)

    def set_nickname(self, domain: str | Domain, key: str, nickname: str | None) -> None:
        self.handler(domain).overlay.set_nickname(key, nickname)

    def clear_all_excluded(self, domain: str | Domain) -> None:
        self.handler(domain).overlay.clear_all_excluded()

    def messaging_app(self) -> MessagingApp:
        return parse_messaging_app(self.config.contacts.messaging_app)

    def calling_app(self) -> CallingApp:
        return parse_calling_app(self.config.contacts.calling_app)

    def contact(self, contact_id: int) -> ContactInfo | None:
        handler = self._ensure_loaded(Domain.CONTACTS)
        return handler.find(str(contact_id))

    def require_contact(self, contact_id: int) -> ContactInfo:
        contact = self.contact(contact_id)
        if contact is None:
            raise KeyError(f"contact not found: {contact_id}")
        return contact

    def resolve_messaging_channel(self, contact_id: int, phone_number: str | None = None) -> MessagingApp:
        return resolve_messaging_channel(
            self.require_contact(contact_id),
            self.messaging_app(),
            self.source.is_app_installed,
            phone_number=phone_number,
            row_index=self.row_index,
        )

    def resolve_calling_channel(self, contact_id: int, phone_number: str | None = None) -> CallingApp:
        return resolve_calling_channel(
            self.require_contact(contact_id),
            self.calling_app(),
            self.source.is_app_installed,
            phone_number=phone_number,
            row_index=self.row_index,
        )

    def channel(self, contact_id: int, phone_number: str | None = None) -> dict[str, Any]:
        contact = self.require_contact(contact_id)
        return ChannelOutput(
            contact_id=contact.contact_id,
            contact=contact.display_name,
            messaging=self.resolve_messaging_channel(contact_id, phone_number).value,
            calling=self.resolve_calling_channel(contact_id, phone_number).value,
            phone_number=phone_number,
            display_number=format_for_display(phone_number) if phone_number else None,
        ).model_dump()

    def contact_actions(self) -> ContactActionCoordinator:
        if self._coordinator is None:
            self._coordinator = ContactActionCoordinator(
                store=self.store,
                launcher=self.launcher,
                permissions=self.permissions,
                is_installed=self.source.is_app_installed,
                messaging_app=self.messaging_app,
                calling_app=self.calling_app,
                recent=self.recent_ledger,
                row_index=self.row_index,
            )
        return self._coordinator

    def record_recent(self, kind: str | RecentKind, value: str) -> bool:
        recent_kind = RecentKind(kind)
        if recent_kind == RecentKind.CONTACT:
            value = str(int(value))
        entry = RecentEntry(recent_kind, value.strip() if recent_kind == RecentKind.QUERY else value)
        return self.recent_ledger.record(entry)

    def recent(self) -> list[dict[str, Any]]:
        return [
            RecentEntryOutput(kind=e.kind.value, value=e.value, stable_key=e.stable_key).model_dump()
            for e in self.recent_ledger.entries()
        ]

    def delete_recent(self, kind: str | RecentKind, value: str) -> None:
        self.recent_ledger.delete(RecentEntry(RecentKind(kind), value))

    def clear_recent(self) -> None:
        self.recent_ledger.clear()

    def status(self) -> dict[str, Any]:
        counts = {d.value: len(self._ensure_loaded(d).candidates()) for d in Domain}
        return {
            "candidates": counts,
            "recent": len(self.recent_ledger.entries()),
            "db_path": str(self.db.path) if self.db is not None else None,
            "catalog_path": str(self.config.catalog_path),
        }
