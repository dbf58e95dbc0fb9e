from __future__ import annotations

from qsearch.handlers.base import SearchHandler
from qsearch.models import ContactInfo, Domain
from qsearch.overlay import CustomizationOverlay
from qsearch.rank.priority import MIN_QUERY_LENGTH


class ContactSearchHandler(SearchHandler[ContactInfo]):
    domain = Domain.CONTACTS

    def __init__(self, overlay: CustomizationOverlay, limit: int = 20, min_query_length: int = MIN_QUERY_LENGTH):
        super().__init__(overlay, limit, min_query_length)

    def match_fields(self, item: ContactInfo) -> tuple[str | None, ...]:
        return (item.display_name,)

    def normalize_candidates(self, items: list[ContactInfo]) -> list[ContactInfo]:
        seen: set[int] = set()
        out: list[ContactInfo] = []
        for contact in items:
            if contact.contact_id in seen:
                continue
            seen.add(contact.contact_id)
            out.append(contact)
        return out

    def get_contact(self, contact_id: int) -> ContactInfo | None:
        return self.find(str(contact_id))
