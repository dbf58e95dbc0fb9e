"""Picks the channel a contact action should go through.

A preferred third-party app is used only when it is installed and the contact
actually exposes a method of that app's kind; otherwise the platform channel
(Messages or Call) is used. There is no second-choice app.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable

from qsearch.contacts.channels import (
    CALLING_KINDS,
    CALLING_PACKAGES,
    MESSAGING_KINDS,
    MESSAGING_PACKAGES,
    CallingApp,
    MessagingApp,
)
from qsearch.models import ContactInfo, ContactMethod, MethodKind
from qsearch.phone import extract_digits, is_same_number

logger = logging.getLogger(__name__)


class ProviderRowIndex:
    """Row ids the contacts provider associates with each phone number.

    Row ids are fetched once per number and kept, so scoping many methods to
    the same number costs a single lookup.
    """

    def __init__(self, lookup: Callable[[str], Iterable[int]]):
        self._lookup = lookup
        self._rows: dict[str, frozenset[int]] = {}
        self._lock = threading.Lock()

    def row_ids(self, number: str) -> frozenset[int]:
        key = extract_digits(number)
        with self._lock:
            cached = self._rows.get(key)
        if cached is not None:
            return cached
        rows = frozenset(self._lookup(number))
        with self._lock:
            self._rows.setdefault(key, rows)
        return rows

    def contains(self, number: str, row_id: int) -> bool:
        return row_id in self.row_ids(number)

    def clear(self) -> None:
        with self._lock:
            self._rows.clear()


def method_matches_number(
    method: ContactMethod,
    phone_number: str | None,
    row_index: ProviderRowIndex | None = None,
) -> bool:
    if phone_number is None:
        return True
    data = method.data.strip()
    if data and is_same_number(data, phone_number):
        return True
    if row_index is not None and method.data_id is not None:
        return row_index.contains(phone_number, method.data_id)
    # Nothing to compare against: a blank datum is not tied to any one number.
    return not data


def has_method(
    contact: ContactInfo,
    kinds: Iterable[MethodKind],
    phone_number: str | None = None,
    row_index: ProviderRowIndex | None = None,
) -> bool:
    wanted = set(kinds)
    return any(
        m.kind in wanted and method_matches_number(m, phone_number, row_index) for m in contact.contact_methods
    )


def resolve_messaging_channel(
    contact: ContactInfo,
    default_app: MessagingApp,
    is_installed: Callable[[str], bool],
    phone_number: str | None = None,
    row_index: ProviderRowIndex | None = None,
) -> MessagingApp:
    if default_app == MessagingApp.MESSAGES:
        return MessagingApp.MESSAGES
    if not is_installed(MESSAGING_PACKAGES[default_app]):
        logger.debug("%s not installed; messaging %s via messages", default_app.value, contact.contact_id)
        return MessagingApp.MESSAGES
    if not has_method(contact, MESSAGING_KINDS[default_app], phone_number, row_index):
        return MessagingApp.MESSAGES
    return default_app


def resolve_calling_channel(
    contact: ContactInfo,
    default_app: CallingApp,
    is_installed: Callable[[str], bool],
    phone_number: str | None = None,
    row_index: ProviderRowIndex | None = None,
) -> CallingApp:
    if default_app == CallingApp.CALL:
        return CallingApp.CALL
    if not is_installed(CALLING_PACKAGES[default_app]):
        logger.debug("%s not installed; calling %s via dialer", default_app.value, contact.contact_id)
        return CallingApp.CALL
    if not has_method(contact, CALLING_KINDS[default_app], phone_number, row_index):
        return CallingApp.CALL
    return default_app
